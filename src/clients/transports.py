"""Transports that deliver a recipe request to a backend and return its JSON body.

Two backends are supported:

1. HTTP (RECIPE_BACKEND="http", default):
   - POSTs the payload to {RECIPE_API_URL}/api/generate-recipes with aiohttp
   - Maps status codes onto the pipeline's error kinds

2. GEMINI (RECIPE_BACKEND="gemini"):
   - Renders the payload as a prompt and calls the Gemini model via google-genai
   - Parses the JSON object out of the model's text

Both raise RecipeServiceError for every failure, so the retry executor can
classify them without knowing which backend is in use.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp
import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from src.models.errors import ErrorKind, RecipeServiceError
from src.models.models import RecipeRequestPayload
from src.prompts.prompts import build_recipe_prompt
from src.utils.config import Config
from src.utils.logger import logger

GENERATE_RECIPES_PATH = "/api/generate-recipes"


class RecipeTransport(ABC):
    """Sends one recipe request and returns the decoded JSON body."""

    @abstractmethod
    async def send(self, payload: RecipeRequestPayload) -> Any:
        """Deliver `payload` and return the parsed response body.

        Raises:
            RecipeServiceError: On any transport, status or body-format failure.
        """
        ...


class HttpRecipeTransport(RecipeTransport):
    """JSON-over-HTTP transport using aiohttp.

    Args:
        base_url: Endpoint base URL, e.g. "https://recipes.example.com".
        api_key: Optional bearer token.
        timeout: Per-request deadline in seconds.
        session: Optional shared aiohttp session; a short-lived one is opened per request otherwise.
        log_payloads: Log request and response bodies at DEBUG level.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
        log_payloads: bool = False,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.url = base_url.rstrip("/") + GENERATE_RECIPES_PATH
        self.api_key = api_key
        self.timeout = timeout
        self._session = session
        self.log_payloads = log_payloads

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def send(self, payload: RecipeRequestPayload) -> Any:
        body = payload.model_dump(exclude_none=True)
        if self.log_payloads:
            logger.debug(f"Request payload: {json.dumps(body)}")

        try:
            if self._session is not None:
                status, raw, charset = await self._post(self._session, body)
            else:
                async with aiohttp.ClientSession() as session:
                    status, raw, charset = await self._post(session, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Network error calling {self.url}: {e!r}")
            raise RecipeServiceError(ErrorKind.NETWORK_UNREACHABLE, str(e) or type(e).__name__) from e

        logger.debug(f"Response status: {status} ({len(raw)} bytes)")
        if self.log_payloads:
            logger.debug(f"Raw response: {raw!r}")

        return _interpret_response(status, raw, charset)

    async def _post(self, session: aiohttp.ClientSession, body: dict) -> tuple[int, bytes, Optional[str]]:
        async with session.post(
            self.url,
            json=body,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            return response.status, await response.read(), response.charset


def _decode_body(body: bytes, charset: Optional[str], errors: str = "strict") -> str:
    try:
        return body.decode(charset or "utf-8", errors)
    except LookupError:
        # Unknown charset label
        if errors == "strict":
            raise
        return body.decode("utf-8", errors)


def _interpret_response(status: int, body: bytes, charset: Optional[str] = None) -> Any:
    """Map an HTTP status and raw body onto a parsed body or a RecipeServiceError.

    Success bodies must decode with the declared charset (UTF-8 when none is
    declared) and parse as JSON. Error bodies are decoded leniently and only
    kept in the error detail.
    """
    if 200 <= status < 300:
        try:
            text = _decode_body(body, charset)
        except (UnicodeDecodeError, LookupError) as e:
            raise RecipeServiceError(ErrorKind.INVALID_RESPONSE, f"Response body is not valid {charset or 'utf-8'} text") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise RecipeServiceError(ErrorKind.INVALID_RESPONSE, "Response body is not valid JSON") from e
    if status == 429:
        raise RecipeServiceError(ErrorKind.RATE_LIMIT_EXCEEDED, "Backend rate limit exceeded (HTTP 429)")
    if status == 400:
        raise RecipeServiceError(ErrorKind.INVALID_INPUT, "Backend rejected the request (HTTP 400)")
    text = _decode_body(body, charset, errors="replace")
    raise RecipeServiceError(ErrorKind.UPSTREAM_ERROR, f"Backend error (HTTP {status}): {text[:200]}")


def parse_model_json(response_text: Optional[str]) -> Optional[Any]:
    """Parse a JSON object from model output text.

    Lenient: strips markdown fences, then tries a direct parse, then the
    outermost {...} block. Returns None if nothing parses.
    """
    if not response_text:
        return None

    cleaned = response_text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", cleaned, count=1)
        cleaned = re.sub(r"\s*```$", "", cleaned, count=1).strip()

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        logger.debug("Direct JSON parse failed, trying object extraction")

    json_match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if json_match:
        try:
            return json.loads(json_match.group())
        except json.JSONDecodeError:
            logger.debug("Regex JSON extraction failed")
    return None


def _classify_api_error(error: genai_errors.APIError) -> RecipeServiceError:
    code = getattr(error, "code", None) or 0
    if code == 429:
        return RecipeServiceError(ErrorKind.RATE_LIMIT_EXCEEDED, f"Gemini quota exceeded ({code})")
    if isinstance(error, genai_errors.ServerError) or code >= 500:
        return RecipeServiceError(ErrorKind.UPSTREAM_ERROR, f"Gemini server error ({code})")
    return RecipeServiceError(ErrorKind.INVALID_INPUT, f"Gemini rejected the request ({code})")


class GeminiRecipeTransport(RecipeTransport):
    """Generate recipes with a Gemini model through google-genai.

    Args:
        api_key: Gemini API key.
        model: Model name.
        temperature: Sampling temperature.
        client: Optional preconfigured genai.Client.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.5-flash",
        temperature: float = 0.4,
        client: Optional[genai.Client] = None,
    ) -> None:
        if not api_key and client is None:
            raise ValueError("GEMINI_API_KEY is required")
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def send(self, payload: RecipeRequestPayload) -> Any:
        prompt = build_recipe_prompt(payload)
        client = self._get_client()

        try:
            # Sync client call, run in a worker thread
            response = await asyncio.to_thread(
                client.models.generate_content,
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as e:
            raise _classify_api_error(e) from e
        except (httpx.TransportError, ConnectionError, TimeoutError) as e:
            raise RecipeServiceError(ErrorKind.NETWORK_UNREACHABLE, str(e) or type(e).__name__) from e

        body = parse_model_json(getattr(response, "text", None))
        if body is None:
            raise RecipeServiceError(ErrorKind.INVALID_RESPONSE, "Model output is not valid JSON")
        return body


def create_transport(cfg: Config) -> RecipeTransport:
    """Create the transport selected by RECIPE_BACKEND."""
    cfg.validate_backend()
    if cfg.RECIPE_BACKEND == "gemini":
        logger.info(f"Using Gemini recipe backend (model={cfg.GEMINI_MODEL})")
        return GeminiRecipeTransport(
            api_key=cfg.GEMINI_API_KEY,
            model=cfg.GEMINI_MODEL,
            temperature=cfg.TEMPERATURE,
        )
    if cfg.RECIPE_BACKEND == "http":
        logger.info(f"Using HTTP recipe backend: {cfg.RECIPE_API_URL}")
        return HttpRecipeTransport(
            base_url=cfg.RECIPE_API_URL,
            api_key=cfg.RECIPE_API_KEY,
            timeout=cfg.REQUEST_TIMEOUT_SECONDS,
            log_payloads=cfg.LOG_PAYLOADS,
        )
    raise ValueError(f"Unknown RECIPE_BACKEND: {cfg.RECIPE_BACKEND!r} (choose 'http' or 'gemini')")
