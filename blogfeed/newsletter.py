"""
Serverless-style newsletter signup handlers.

Each handler takes an event shaped like ``{"body": "<json>"}`` and returns
``{"statusCode": int, "headers": {...}, "body": str}``. A request is one
upstream call with no retry; every failure becomes a 500 response, it
never raises.
"""

import base64
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from blogfeed.errors import BlogfeedError, InvalidSignupError, UpstreamError

log = logging.getLogger(__name__)

FAUNA_GRAPHQL_URL = "https://graphql.fauna.com/graphql"
CONVERTKIT_SUBSCRIBE_URL = "https://api.convertkit.com/v3/forms/{form_id}/subscribe"

CREATE_USER_MUTATION = """
    mutation($data: UserInput!) {
      createUser(data: $data) {
        firstName
        email
      }
    }"""

DUPLICATE_RECORD_ERROR = "Instance not unique"
ALREADY_SUBSCRIBED_MESSAGE = "Email already subscribed."

JSON_HEADERS = {"Content-Type": "application/json"}
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class NewsletterConfig:
    fauna_api_key: str = ""
    graphql_url: str = FAUNA_GRAPHQL_URL
    convertkit_api_key: str = ""
    convertkit_form_id: str = ""
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "NewsletterConfig":
        env = os.environ if environ is None else environ
        return cls(
            fauna_api_key=env.get("FAUNA_API_KEY", ""),
            graphql_url=env.get("FAUNA_GRAPHQL_URL", FAUNA_GRAPHQL_URL),
            convertkit_api_key=env.get("CK_API_KEY", ""),
            convertkit_form_id=env.get("CK_FORM_ID", ""),
            timeout=_timeout_from_env(env),
        )


def _timeout_from_env(env: Mapping[str, str]) -> float:
    raw = env.get("NEWSLETTER_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        timeout = 0.0
    if not timeout > 0:
        log.warning("ignoring NEWSLETTER_TIMEOUT=%r, using %ss", raw, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return timeout


def response(status_code: int, body: str) -> Dict[str, Any]:
    return {"statusCode": status_code, "headers": dict(JSON_HEADERS), "body": body}


def error_response(message: str) -> Dict[str, Any]:
    # failures raised inside the handler go out as a JSON string literal
    return response(500, json.dumps(message))


def parse_signup(event: Mapping[str, Any]) -> Tuple[str, str]:
    """Return (first_name, email) from the event body. Name is checked before email."""
    raw = event.get("body") if isinstance(event, Mapping) else None
    if raw is None:
        raise InvalidSignupError("Request body is required")
    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw)
        except (ValueError, TypeError):
            raise InvalidSignupError("Request body is not valid base64")
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, Mapping):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            raise InvalidSignupError("Request body must be valid JSON")
    if not isinstance(data, Mapping):
        raise InvalidSignupError("Request body must be a JSON object")

    first_name = data.get("firstName")
    email = data.get("email")
    if not first_name:
        raise InvalidSignupError("Name is required")
    if not email:
        raise InvalidSignupError("Email is required")
    return str(first_name), str(email)


class SignupHandler(ABC):
    """One POST to a third-party list per request."""

    name: str

    def __init__(self, config: NewsletterConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._client = client

    def __call__(self, event: Mapping[str, Any]) -> Dict[str, Any]:
        return self.handle(event)

    def _post(self, url: str, **kwargs) -> httpx.Response:
        try:
            if self._client is not None:
                return self._client.post(url, timeout=self.config.timeout, **kwargs)
            with httpx.Client(timeout=self.config.timeout) as client:
                return client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{self.name} request failed: {e}") from e

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            raise UpstreamError(
                f"Upstream returned a non-JSON response (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )

    @abstractmethod
    def subscribe(self, first_name: str, email: str) -> Dict[str, Any]:
        """Send the signup upstream and return a Lambda-style response."""

    def handle(self, event: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            first_name, email = parse_signup(event)
            return self.subscribe(first_name, email)
        except BlogfeedError as e:
            log.warning("%s signup failed: %s", self.name, e)
            return error_response(str(e))


class FaunaSignupHandler(SignupHandler):
    """Creates a user record through the Fauna GraphQL createUser mutation."""

    name = "fauna"

    def subscribe(self, first_name: str, email: str) -> Dict[str, Any]:
        payload = {
            "query": CREATE_USER_MUTATION,
            "variables": {"data": {"firstName": first_name, "email": email}},
        }
        resp = self._post(
            self.config.graphql_url,
            json=payload,
            headers={**JSON_HEADERS, "Authorization": f"Bearer {self.config.fauna_api_key}"},
        )
        result = self._json(resp)

        errors = result.get("errors") if isinstance(result, dict) else None
        if errors:
            message = graphql_error_message(errors)
            log.warning("fauna rejected signup: %s", message)
            return response(500, message)

        if resp.status_code >= 400:
            raise UpstreamError(f"Upstream returned HTTP {resp.status_code}", status_code=resp.status_code)

        log.info("fauna signup stored")
        return response(200, json.dumps(result))


def graphql_error_message(errors: Any) -> str:
    """First GraphQL error message, with Fauna's duplicate-record error made user-facing."""
    first = errors[0] if isinstance(errors, list) and errors else errors
    message = first.get("message") if isinstance(first, Mapping) else None
    if not message:
        message = str(first)
    if message == DUPLICATE_RECORD_ERROR:
        return ALREADY_SUBSCRIBED_MESSAGE
    return message


class ConvertKitSignupHandler(SignupHandler):
    """Adds the subscriber to a ConvertKit form."""

    name = "convertkit"

    def subscribe(self, first_name: str, email: str) -> Dict[str, Any]:
        if not self.config.convertkit_form_id:
            raise UpstreamError("CK_FORM_ID is not configured")

        url = CONVERTKIT_SUBSCRIBE_URL.format(form_id=self.config.convertkit_form_id)
        resp = self._post(
            url,
            json={
                "api_key": self.config.convertkit_api_key,
                "first_name": first_name,
                "email": email,
            },
            headers=dict(JSON_HEADERS),
        )
        result = self._json(resp)

        if resp.status_code >= 400:
            message = None
            if isinstance(result, dict):
                message = result.get("message") or result.get("error")
            raise UpstreamError(message or f"Upstream returned HTTP {resp.status_code}",
                                status_code=resp.status_code)

        log.info("convertkit signup stored")
        return response(200, json.dumps(result))


def handler(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """Function entry point: Fauna signup configured from the environment."""
    return FaunaSignupHandler(NewsletterConfig.from_env())(event)


def convertkit_handler(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    return ConvertKitSignupHandler(NewsletterConfig.from_env())(event)
