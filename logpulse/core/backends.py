"""
LogPulse AI - Diagnosis Backends
================================

Concrete text-generation backends behind the DiagnosisProvider.
Supports multiple providers: Mock (offline, deterministic), any
OpenAI-compatible chat API (Groq, OpenAI, ...), Google Gemini and Ollama.

Every backend is called at most once per diagnosis and never retries.
Each HTTP backend bounds its call with its own timeout and raises
ProviderError on any failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import re

import httpx

from logpulse.core.exceptions import ProviderError
from logpulse_shared.constants import ProviderName
from logpulse_shared.utils.logging import get_logger

logger = get_logger(__name__)


SYSTEM_PROMPT = """You are LogPulse, a diagnostic assistant for production errors.
You read error logs from deployed applications (containers, Node.js, Java,
Python, MySQL, PostgreSQL and common web frameworks) and explain them.

For the log you are given:
1. Identify the root cause
2. Give clear, actionable steps to fix it
3. Suggest how to prevent it from happening again

Reply with an HTML fragment using exactly this structure:

<div class="diagnosis">
    <h3>What Happened:</h3>
    <p>Short explanation of the root cause in plain language</p>

    <h3>How to Fix:</h3>
    <ul>
        <li>Step 1</li>
        <li>Step 2</li>
        <li>Step 3</li>
    </ul>

    <h3>Prevention Tips:</h3>
    <ul>
        <li>Practice 1</li>
        <li>Practice 2</li>
    </ul>
</div>

Pay particular attention to environment variables, database connectivity,
memory and CPU limits, port binding and container configuration.
Keep the language clear and avoid jargon where possible."""


USER_PROMPT_TEMPLATE = """Analyze this production log and provide a diagnosis:

{log}

Reply with the HTML structure described in the instructions."""


def build_prompt(log_text: str) -> str:
    """Build the user prompt sent to a backend for one log."""
    return USER_PROMPT_TEMPLATE.format(log=log_text)


class DiagnosisBackend(ABC):
    """Base class for diagnosis backends."""

    name: str = "base"

    @abstractmethod
    async def initialize(self) -> None:
        """Acquire resources (HTTP clients, connections)."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Release resources."""
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        """Check if the backend can take calls."""
        pass

    @abstractmethod
    async def call(self, prompt: str) -> str:
        """Return the generated diagnosis for ``prompt`` or raise ProviderError."""
        pass


class MockBackend(DiagnosisBackend):
    """
    Offline backend for development and testing.

    Matches the log against a table of well-known failure signatures and
    renders a canned diagnosis in the same HTML shape a hosted model is
    asked for. Responses are deterministic for a given prompt.
    """

    name = ProviderName.MOCK.value

    # pattern -> (what happened, how to fix, prevention)
    ERROR_PATTERNS = {
        r"(?i)null\s*pointer|NullPointerException|NoneType|null\s*reference|undefined is not": (
            "Code dereferenced a null/None value that it expected to be populated.",
            ["Find the variable named in the stack trace and trace where it is assigned",
             "Add a null check or a default before the failing call",
             "Verify the data source actually returns the field"],
            ["Use Optional types or null-safe operators",
             "Validate external data at the boundary"]
        ),
        r"(?i)out\s*of\s*memory|OutOfMemoryError|OOMKilled|heap\s*space|memory\s*limit": (
            "The process exceeded its memory limit and was stopped.",
            ["Raise the container or JVM memory limit if it is undersized",
             "Look for unbounded caches or collections growing per request",
             "Stream or paginate large result sets"],
            ["Alert on memory usage before the hard limit",
             "Load-test with production-sized data"]
        ),
        r"(?i)connection\s*refused|ECONNREFUSED|cannot\s*connect|host\s*unreachable": (
            "The application could not open a connection to a dependency.",
            ["Check that the target service or database is running",
             "Verify host, port and connection string environment variables",
             "Confirm network rules allow the connection"],
            ["Add health checks for dependencies",
             "Fail fast with a clear message when required settings are missing"]
        ),
        r"(?i)timed?\s*out|timeout|deadline\s*exceeded": (
            "An operation took longer than its configured timeout.",
            ["Identify the slow dependency in the log",
             "Check for slow queries or resource contention",
             "Raise the timeout only if the operation is legitimately slow"],
            ["Set explicit timeouts on every outbound call",
             "Move long-running work to background jobs"]
        ),
        r"(?i)EADDRINUSE|address\s*already\s*in\s*use|bind\s*failed|port\s*\d+\s*is\s*already": (
            "The server tried to bind a port that is already taken.",
            ["Stop the other process using the port",
             "Read the port from the PORT environment variable instead of hard-coding it"],
            ["Let the platform assign the port",
             "Handle shutdown signals so old instances release the port"]
        ),
        r"(?i)auth(entication)?\s*(failed|error)|invalid\s*credentials|access\s*denied\s*for\s*user|unauthorized": (
            "Credentials were rejected by a dependency.",
            ["Check the username, password or token environment variables",
             "Confirm the credentials have not expired or been rotated"],
            ["Keep secrets in the platform's secret store",
             "Alert before tokens expire"]
        ),
        r"(?i)segmentation\s*fault|core\s*dumped|SIGSEGV": (
            "A native component crashed with a memory access violation.",
            ["Identify the native library or extension from the crash output",
             "Check for mismatched binary versions in the image",
             "Reproduce locally with the same base image"],
            ["Pin native dependency versions",
             "Rebuild images when upgrading base layers"]
        ),
    }

    DEFAULT_DIAGNOSIS = (
        "The log does not match a known failure signature.",
        ["Review the lines just before the failure for context",
         "Check recent deployments and configuration changes",
         "Examine system metrics around the time of the error"],
        ["Log enough context (request id, inputs) to diagnose failures",
         "Keep deployments small so regressions are easy to isolate"]
    )

    def __init__(self):
        self._ready = False

    async def initialize(self) -> None:
        logger.info("Initializing mock diagnosis backend")
        self._ready = True

    async def shutdown(self) -> None:
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    def _match(self, text: str) -> tuple[str, list[str], list[str]]:
        for pattern, diagnosis in self.ERROR_PATTERNS.items():
            if re.search(pattern, text):
                return diagnosis
        return self.DEFAULT_DIAGNOSIS

    async def call(self, prompt: str) -> str:
        what, fixes, prevention = self._match(prompt)
        fix_items = "\n".join(f"        <li>{step}</li>" for step in fixes)
        tip_items = "\n".join(f"        <li>{tip}</li>" for tip in prevention)
        return (
            '<div class="diagnosis">\n'
            "    <h3>What Happened:</h3>\n"
            f"    <p>{what}</p>\n"
            "    <h3>How to Fix:</h3>\n"
            f"    <ul>\n{fix_items}\n    </ul>\n"
            "    <h3>Prevention Tips:</h3>\n"
            f"    <ul>\n{tip_items}\n    </ul>\n"
            "</div>"
        )


class HTTPBackend(DiagnosisBackend):
    """
    Shared plumbing for backends reached over HTTP.

    Owns one httpx.AsyncClient with a fixed timeout. httpx performs no
    retries by default and none are added here.
    """

    def __init__(
        self,
        base_url: str,
        model_name: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        timeout_seconds: float = 30.0,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _headers(self) -> dict[str, str]:
        return {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout_seconds),
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    async def initialize(self) -> None:
        logger.info(
            f"Initializing {self.name} diagnosis backend with model: {self.model_name}",
            extra={"backend": self.name, "model": self.model_name}
        )
        self._get_client()

    async def shutdown(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def is_ready(self) -> bool:
        return self._client is not None

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST once and return the decoded JSON body."""
        client = self._get_client()
        try:
            response = await client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"timed out after {self.timeout_seconds}s") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e

        if response.status_code != 200:
            raise ProviderError(
                self.name,
                f"responded with status {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(self.name, "response body is not JSON") from e

    @abstractmethod
    def _extract(self, body: dict[str, Any]) -> str:
        """Pull the generated text out of a decoded response body."""
        pass

    def _parse(self, body: dict[str, Any]) -> str:
        try:
            text = self._extract(body)
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, f"malformed response: {e!r}") from e

        if not isinstance(text, str) or not text.strip():
            raise ProviderError(self.name, "empty response")
        return text


class OpenAICompatibleBackend(HTTPBackend):
    """
    Chat-completions backend (Groq, OpenAI or any compatible endpoint).
    """

    name = ProviderName.OPENAI.value

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    def _extract(self, body: dict[str, Any]) -> str:
        return body["choices"][0]["message"]["content"]

    async def call(self, prompt: str) -> str:
        body = await self._post(
            "/chat/completions",
            {
                "model": self.model_name,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            }
        )
        return self._parse(body)


class GeminiBackend(HTTPBackend):
    """
    Google Gemini backend using the Generative Language REST API.
    """

    name = ProviderName.GEMINI.value

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key} if self.api_key else {}

    def _extract(self, body: dict[str, Any]) -> str:
        parts = body["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)

    async def call(self, prompt: str) -> str:
        body = await self._post(
            f"/models/{self.model_name}:generateContent",
            {
                "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": self.temperature,
                    "maxOutputTokens": self.max_tokens,
                },
            }
        )
        return self._parse(body)


class OllamaBackend(HTTPBackend):
    """
    Ollama backend for local LLM inference.

    Requires Ollama to be running with the configured model pulled.
    """

    name = ProviderName.OLLAMA.value

    def _extract(self, body: dict[str, Any]) -> str:
        return body["response"]

    async def call(self, prompt: str) -> str:
        body = await self._post(
            "/api/generate",
            {
                "model": self.model_name,
                "system": SYSTEM_PROMPT,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "temperature": self.temperature,
                    "num_predict": self.max_tokens,
                },
            }
        )
        return self._parse(body)


def build_backend(settings) -> DiagnosisBackend:
    """
    Build the backend named by ``settings.provider``.
    """
    provider = ProviderName(settings.provider)

    common = dict(
        model_name=settings.provider_model_name,
        temperature=settings.provider_temperature,
        max_tokens=settings.provider_max_tokens,
        timeout_seconds=settings.provider_timeout_seconds,
    )

    if provider == ProviderName.OPENAI:
        return OpenAICompatibleBackend(
            base_url=settings.provider_base_url,
            api_key=settings.provider_api_key,
            **common
        )
    if provider == ProviderName.GEMINI:
        return GeminiBackend(
            base_url=settings.gemini_base_url,
            api_key=settings.provider_api_key,
            **common
        )
    if provider == ProviderName.OLLAMA:
        return OllamaBackend(base_url=settings.ollama_url, **common)

    return MockBackend()
