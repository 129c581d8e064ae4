"""LLM client wrapper for the Anthropic messages API."""

import json
import os
import re

import httpx
import structlog
import yaml

from baydigital.services.errors import ExternalServiceError, InvalidRequestError

logger = structlog.get_logger(__name__)

ENV_PATTERN = re.compile(r"\$\{env\.([^}]+)\}")

DEFAULT_PROVIDER = {
    "type": "anthropic",
    "base_url": "https://api.anthropic.com",
    "api_key": "${env.ANTHROPIC_API_KEY}",
    "model": "claude-sonnet-4-20250514",
    "api_version": "2023-06-01",
    "max_tokens": 1024,
    "temperature": 0.7,
}

PARSE_FAILURE_MESSAGE = "Failed to parse AI response. Please try again."


def resolve_env(value):
    """Expand ${env.NAME} and ${env.NAME:-default} references in a config value."""
    if not isinstance(value, str) or "${env." not in value:
        return value

    for match in ENV_PATTERN.findall(value):
        parts = match.split(":-", 1)
        env_var = parts[0]
        default = parts[1] if len(parts) > 1 else None
        value = value.replace(f"${{env.{match}}}", os.getenv(env_var, default) or "")
    return value


def extract_json_text(content: str) -> str:
    """Strip a ``` fence around a JSON object, keeping the outermost braces."""
    text = content.strip()
    if text.startswith("```"):
        first = text.find("{")
        last = text.rfind("}")
        if first != -1 and last > first:
            text = text[first : last + 1]
    return text


def parse_json_response(content: str) -> dict:
    """Parse a model reply that should be a single JSON object.

    Raises:
        InvalidRequestError: If the reply is not a JSON object
    """
    text = extract_json_text(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("llm_json_parse_failed", error=str(exc), snippet=text[:500])
        raise InvalidRequestError(PARSE_FAILURE_MESSAGE) from exc

    if not isinstance(data, dict):
        raise InvalidRequestError(PARSE_FAILURE_MESSAGE)
    return data


class LLMClient:
    """Wrapper for the hosted completion API.

    Provider settings come from bay-digital.yaml (providers.llm); without a
    config file the Anthropic defaults are used with the key taken from
    ANTHROPIC_API_KEY.
    """

    def __init__(
        self,
        config_path: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize LLM client.

        Args:
            config_path: Path to bay-digital.yaml configuration
                        (defaults to BAY_CONFIG_FILE env var)
            http_client: Pre-built client (tests inject a mock transport)
        """
        self.config_path = config_path or os.getenv("BAY_CONFIG_FILE", "./bay-digital.yaml")
        self._load_config()
        self.http_client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(60.0),
        )

    def _load_config(self) -> None:
        """Load provider configuration from the YAML file, if present."""
        provider = dict(DEFAULT_PROVIDER)
        if os.path.exists(self.config_path):
            with open(self.config_path) as f:
                config = yaml.safe_load(f) or {}
            provider.update(config.get("providers", {}).get("llm", {}) or {})

        self.provider_config = {key: resolve_env(value) for key, value in provider.items()}
        self.provider_type = self.provider_config["type"]
        self.base_url = self.provider_config["base_url"].rstrip("/")
        self.api_key = self.provider_config["api_key"]
        self.model = self.provider_config["model"]
        self.api_version = self.provider_config["api_version"]
        self.max_tokens = int(self.provider_config["max_tokens"])
        self.temperature = float(self.provider_config["temperature"])

    async def generate(
        self,
        prompt: str | list[dict],
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate text from the model.

        Args:
            prompt: User prompt, or a list of content blocks (text/document)
            system_prompt: System prompt (optional)
            temperature: Sampling temperature (optional, uses config default)
            max_tokens: Max tokens to generate (optional, uses config default)

        Returns:
            Text of the first content block

        Raises:
            ExternalServiceError: On a transport failure, a non-2xx reply or a reply
                without text
        """
        if not self.api_key:
            raise ExternalServiceError("llm", "ANTHROPIC_API_KEY is not configured")

        request_data = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request_data["system"] = system_prompt

        try:
            response = await self.http_client.post(
                f"{self.base_url}/v1/messages",
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": self.api_version,
                    "content-type": "application/json",
                },
                json=request_data,
            )
        except httpx.HTTPError as exc:
            logger.error("llm_request_failed", error=str(exc), error_type=type(exc).__name__)
            raise ExternalServiceError(
                "llm", f"AI API unreachable: {str(exc) or type(exc).__name__}"
            ) from exc
        if response.status_code >= 400:
            logger.error(
                "llm_request_failed",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ExternalServiceError(
                "llm",
                f"AI API error: {response.status_code}",
                response.status_code,
            )

        try:
            result = response.json()
        except ValueError as exc:
            raise ExternalServiceError("llm", "AI response was not valid JSON") from exc
        content = result.get("content") if isinstance(result, dict) else None
        text = content[0].get("text") if content and isinstance(content[0], dict) else None
        if not isinstance(text, str):
            raise ExternalServiceError("llm", "AI response missing text content")

        logger.info(
            "llm_completion",
            model=self.model,
            input_tokens=result.get("usage", {}).get("input_tokens"),
            output_tokens=result.get("usage", {}).get("output_tokens"),
        )
        return text

    async def generate_json(
        self,
        prompt: str | list[dict],
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> dict:
        """Generate and parse a JSON object reply."""
        content = await self.generate(prompt, system_prompt=system_prompt, max_tokens=max_tokens)
        return parse_json_response(content)

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()
