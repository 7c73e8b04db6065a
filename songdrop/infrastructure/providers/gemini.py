import logging
from typing import Any, List, Optional

import google.generativeai as genai

from songdrop.domain.ports import LanguageModel

logger = logging.getLogger(__name__)

GEMINI_MODEL_NAME = 'gemini-2.0-flash-lite'


class GeminiModel(LanguageModel):
    """Structured-generation adapter over the Gemini API."""

    def __init__(self, api_key: str, model_name: str = GEMINI_MODEL_NAME,
                 request_timeout: int = 30, model: Optional[Any] = None):
        """Initialize Gemini adapter.

        Args:
            api_key: Gemini API key
            model_name: Model identifier
            request_timeout: Per-call timeout in seconds
            model: Pre-built GenerativeModel, used by tests
        """
        if not api_key and model is None:
            raise ValueError("Gemini API key is required")
        self.model_name = model_name
        self.request_timeout = request_timeout
        if model is None:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)
        self._model = model

    def generate_json(self, parts: List[str], schema: dict) -> Optional[str]:
        """Return the model's JSON text for the prompt, or None when it returned no content."""
        generation_config = genai.types.GenerationConfig(
            response_mime_type='application/json',
            response_schema=schema,
            temperature=0.0,
        )
        contents = [{'role': 'user', 'parts': list(parts)}]

        logger.debug(f"Starting Gemini call for model '{self.model_name}'")
        response = self._model.generate_content(
            contents,
            generation_config=generation_config,
            request_options={'timeout': self.request_timeout},
        )

        if response and response.candidates and response.candidates[0].content \
                and response.candidates[0].content.parts:
            text = "".join(part.text for part in response.candidates[0].content.parts)
            logger.debug(f"Gemini returned: {text!r}")
            return text

        logger.warning(f"Gemini returned no content. Raw response: {response}")
        return None
