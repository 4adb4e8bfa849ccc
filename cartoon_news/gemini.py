"""Gemini generateContent client."""

from typing import Any

from .api_client import ResilientClient
from .config import GeminiConfig
from .errors import UpstreamHTTPError
from .logging_config import create_execution_logger


class GeminiClient:
    """Text and image generation through the Gemini REST API."""

    def __init__(
        self,
        config: GeminiConfig,
        client: ResilientClient | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the Gemini client.

        Args:
            config: Models, endpoint and API key
            client: Retrying HTTP client used for generateContent calls
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.client = client or ResilientClient(execution_id=execution_id)
        self.logger = create_execution_logger("gemini", execution_id)

        self.logger.info(
            "GeminiClient initialized",
            text_model=config.text_model,
            image_model=config.image_model,
            api_key_configured=bool(config.api_key),
        )

    def _generate(
        self, model: str, prompt: str, generation_config: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        self.client.require_credential(self.config.api_key, "Gemini API key")

        request_body: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if generation_config:
            request_body["generationConfig"] = generation_config

        self.logger.info(
            "Calling Gemini API", model=model, prompt_length=len(prompt)
        )
        data = self.client.call_json(
            "POST",
            self.config.endpoint(model),
            json=request_body,
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self.config.api_key,
            },
        )

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            code = error.get("code", 500) if isinstance(error, dict) else 500
            self.logger.error(f"Gemini API error: {message}", model=model)
            raise UpstreamHTTPError(f"API Error: {message}", upstream_status=code)

        candidates = len(data.get("candidates") or []) if isinstance(data, dict) else 0
        self.logger.info("Gemini response received", model=model, candidates=candidates)
        return data if isinstance(data, dict) else {}

    def generate_text(self, prompt: str) -> dict[str, Any]:
        """Run the text model on ``prompt`` and return the raw response."""
        return self._generate(self.config.text_model, prompt)

    def generate_image(self, prompt: str) -> dict[str, Any]:
        """Run the image model on ``prompt`` and return the raw response."""
        return self._generate(
            self.config.image_model,
            prompt,
            generation_config={"responseModalities": ["IMAGE"]},
        )
