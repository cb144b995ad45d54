import base64
import json

import httpx
import pytest
import respx

from blogfeed.errors import InvalidSignupError
from blogfeed.newsletter import (
    ALREADY_SUBSCRIBED_MESSAGE,
    FAUNA_GRAPHQL_URL,
    ConvertKitSignupHandler,
    FaunaSignupHandler,
    NewsletterConfig,
    graphql_error_message,
    handler,
    parse_signup,
)

CK_URL = "https://api.convertkit.com/v3/forms/123/subscribe"


def _event(**body):
    return {"body": json.dumps(body)}


@pytest.fixture
def fauna():
    return FaunaSignupHandler(NewsletterConfig(fauna_api_key="secret"))


# ── parse_signup ──────────────────────────────────────────────

class TestParseSignup:
    def test_ok(self):
        assert parse_signup(_event(firstName="Jane", email="jane@example.com")) == ("Jane", "jane@example.com")

    def test_name_checked_first(self):
        with pytest.raises(InvalidSignupError, match="Name is required"):
            parse_signup(_event())

    def test_missing_email(self):
        with pytest.raises(InvalidSignupError, match="Email is required"):
            parse_signup(_event(firstName="Jane"))

    def test_invalid_json(self):
        with pytest.raises(InvalidSignupError, match="valid JSON"):
            parse_signup({"body": "{nope"})

    def test_missing_body(self):
        with pytest.raises(InvalidSignupError, match="body is required"):
            parse_signup({})

    def test_json_array(self):
        with pytest.raises(InvalidSignupError, match="JSON object"):
            parse_signup({"body": "[1, 2]"})

    def test_base64_body(self):
        raw = json.dumps({"firstName": "Jane", "email": "jane@example.com"}).encode()
        event = {"body": base64.b64encode(raw).decode(), "isBase64Encoded": True}
        assert parse_signup(event) == ("Jane", "jane@example.com")


def test_graphql_error_message():
    assert graphql_error_message([{"message": "Instance not unique"}]) == ALREADY_SUBSCRIBED_MESSAGE
    assert graphql_error_message([{"message": "Invalid database secret"}]) == "Invalid database secret"


# ── Fauna ─────────────────────────────────────────────────────

class TestFaunaSignupHandler:
    @respx.mock
    def test_success_returns_upstream_body(self, fauna):
        upstream = {"data": {"createUser": {"firstName": "Jane", "email": "jane@example.com"}}}
        route = respx.post(FAUNA_GRAPHQL_URL).mock(return_value=httpx.Response(200, json=upstream))

        resp = fauna.handle(_event(firstName="Jane", email="jane@example.com"))

        assert resp["statusCode"] == 200
        assert json.loads(resp["body"]) == upstream
        assert resp["headers"]["Content-Type"] == "application/json"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer secret"
        sent = json.loads(request.content)
        assert "createUser" in sent["query"]
        assert sent["variables"] == {"data": {"firstName": "Jane", "email": "jane@example.com"}}

    @respx.mock
    def test_duplicate_email(self, fauna):
        respx.post(FAUNA_GRAPHQL_URL).mock(
            return_value=httpx.Response(200, json={"data": None, "errors": [{"message": "Instance not unique"}]})
        )
        resp = fauna.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 500
        assert resp["body"] == "Email already subscribed."

    @respx.mock
    def test_other_upstream_error_passes_through(self, fauna):
        respx.post(FAUNA_GRAPHQL_URL).mock(
            return_value=httpx.Response(200, json={"errors": [{"message": "Invalid database secret"}]})
        )
        resp = fauna.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 500
        assert resp["body"] == "Invalid database secret"

    @respx.mock
    def test_missing_email_makes_no_call(self, fauna):
        route = respx.post(FAUNA_GRAPHQL_URL).mock(return_value=httpx.Response(200, json={}))
        resp = fauna.handle(_event(firstName="Jane"))
        assert resp["statusCode"] == 500
        assert json.loads(resp["body"]) == "Email is required"
        assert not route.called

    @respx.mock
    def test_missing_name(self, fauna):
        route = respx.post(FAUNA_GRAPHQL_URL).mock(return_value=httpx.Response(200, json={}))
        resp = fauna.handle(_event(email="jane@example.com"))
        assert resp["body"] == '"Name is required"'
        assert not route.called

    @respx.mock
    def test_transport_error(self, fauna):
        respx.post(FAUNA_GRAPHQL_URL).mock(side_effect=httpx.ConnectError("boom"))
        resp = fauna.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 500
        assert "boom" in json.loads(resp["body"])

    @respx.mock
    def test_single_attempt(self, fauna):
        route = respx.post(FAUNA_GRAPHQL_URL).mock(side_effect=httpx.ConnectError("boom"))
        fauna.handle(_event(firstName="Jane", email="jane@example.com"))
        assert route.call_count == 1

    @respx.mock
    def test_non_json_upstream(self, fauna):
        respx.post(FAUNA_GRAPHQL_URL).mock(return_value=httpx.Response(502, text="<html>Bad gateway</html>"))
        resp = fauna.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 500
        assert "non-JSON" in json.loads(resp["body"])

    @respx.mock
    def test_http_error_without_graphql_errors(self, fauna):
        respx.post(FAUNA_GRAPHQL_URL).mock(return_value=httpx.Response(401, json={"message": "unauthorized"}))
        resp = fauna.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 500
        assert json.loads(resp["body"]) == "Upstream returned HTTP 401"

    def test_injected_client(self):
        seen = []

        def upstream(request):
            seen.append(request)
            return httpx.Response(200, json={"data": {"createUser": {"email": "a@b.c"}}})

        client = httpx.Client(transport=httpx.MockTransport(upstream))
        h = FaunaSignupHandler(NewsletterConfig(fauna_api_key="k", graphql_url="https://db.test/graphql"),
                               client=client)
        resp = h(_event(firstName="A", email="a@b.c"))
        assert resp["statusCode"] == 200
        assert str(seen[0].url) == "https://db.test/graphql"

    @respx.mock
    def test_module_handler_reads_env(self, monkeypatch):
        monkeypatch.setenv("FAUNA_API_KEY", "from-env")
        route = respx.post(FAUNA_GRAPHQL_URL).mock(return_value=httpx.Response(200, json={"data": {}}))
        resp = handler(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 200
        assert route.calls.last.request.headers["Authorization"] == "Bearer from-env"


# ── ConvertKit ────────────────────────────────────────────────

class TestConvertKitSignupHandler:
    @pytest.fixture
    def ck(self):
        return ConvertKitSignupHandler(NewsletterConfig(convertkit_api_key="ck-key", convertkit_form_id="123"))

    @respx.mock
    def test_success(self, ck):
        upstream = {"subscription": {"id": 1, "state": "inactive"}}
        route = respx.post(CK_URL).mock(return_value=httpx.Response(200, json=upstream))
        resp = ck.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 200
        assert json.loads(resp["body"]) == upstream
        assert json.loads(route.calls.last.request.content) == {
            "api_key": "ck-key", "first_name": "Jane", "email": "jane@example.com",
        }

    @respx.mock
    def test_upstream_error_message(self, ck):
        respx.post(CK_URL).mock(
            return_value=httpx.Response(401, json={"error": "Authorization Failed", "message": "API Key not valid"})
        )
        resp = ck.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 500
        assert json.loads(resp["body"]) == "API Key not valid"

    def test_missing_form_id(self):
        h = ConvertKitSignupHandler(NewsletterConfig(convertkit_api_key="ck-key"))
        resp = h.handle(_event(firstName="Jane", email="jane@example.com"))
        assert resp["statusCode"] == 500
        assert json.loads(resp["body"]) == "CK_FORM_ID is not configured"


def test_config_from_env():
    cfg = NewsletterConfig.from_env({"FAUNA_API_KEY": "a", "CK_API_KEY": "b", "CK_FORM_ID": "c",
                                     "NEWSLETTER_TIMEOUT": "3.5"})
    assert (cfg.fauna_api_key, cfg.convertkit_api_key, cfg.convertkit_form_id) == ("a", "b", "c")
    assert cfg.timeout == 3.5
    assert cfg.graphql_url == FAUNA_GRAPHQL_URL


@pytest.mark.parametrize("raw", ["ten", "0", "-1", ""])
def test_config_bad_timeout_falls_back(raw):
    assert NewsletterConfig.from_env({"NEWSLETTER_TIMEOUT": raw}).timeout == 10.0


@respx.mock
def test_handler_with_bad_timeout_still_responds(monkeypatch):
    monkeypatch.setenv("FAUNA_API_KEY", "from-env")
    monkeypatch.setenv("NEWSLETTER_TIMEOUT", "ten")
    respx.post(FAUNA_GRAPHQL_URL).mock(side_effect=httpx.ConnectError("boom"))
    resp = handler(_event(firstName="Jane", email="jane@example.com"))
    assert resp["statusCode"] == 500
    assert "fauna request failed" in json.loads(resp["body"])
