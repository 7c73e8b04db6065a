import pytest
from types import SimpleNamespace
from unittest.mock import Mock, patch

from songdrop.application.prompts import SONG_INFO_SCHEMA
from songdrop.infrastructure.providers.gemini import GEMINI_MODEL_NAME, GeminiModel


def gemini_response(*texts):
    parts = [SimpleNamespace(text=t) for t in texts]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


class TestGeminiModel:
    """Tests for the Gemini structured-generation adapter."""

    def setup_method(self):
        self.genai_patcher = patch('songdrop.infrastructure.providers.gemini.genai')
        self.mock_genai = self.genai_patcher.start()
        self.model = Mock()
        self.adapter = GeminiModel("gemini-key", model=self.model, request_timeout=12)

    def teardown_method(self):
        self.genai_patcher.stop()

    def test_builds_model_from_api_key(self):
        GeminiModel("gemini-key")

        self.mock_genai.configure.assert_called_once_with(api_key="gemini-key")
        self.mock_genai.GenerativeModel.assert_called_once_with(GEMINI_MODEL_NAME)

    def test_missing_api_key(self):
        with pytest.raises(ValueError):
            GeminiModel("")

    def test_generate_json_joins_parts(self):
        self.model.generate_content.return_value = gemini_response('{"title": "Lunar', ' Drift", "artist": []}')

        text = self.adapter.generate_json(["instructions", "query"], SONG_INFO_SCHEMA)

        assert text == '{"title": "Lunar Drift", "artist": []}'

    def test_generate_json_requests_schema_output(self):
        self.model.generate_content.return_value = gemini_response('{}')

        self.adapter.generate_json(["instructions", "query"], SONG_INFO_SCHEMA)

        self.mock_genai.types.GenerationConfig.assert_called_once_with(
            response_mime_type='application/json',
            response_schema=SONG_INFO_SCHEMA,
            temperature=0.0,
        )
        args, kwargs = self.model.generate_content.call_args
        assert args[0] == [{'role': 'user', 'parts': ["instructions", "query"]}]
        assert kwargs['generation_config'] is self.mock_genai.types.GenerationConfig.return_value
        assert kwargs['request_options'] == {'timeout': 12}

    def test_no_candidates_returns_none(self):
        self.model.generate_content.return_value = SimpleNamespace(candidates=[])

        assert self.adapter.generate_json(["p"], SONG_INFO_SCHEMA) is None

    def test_model_errors_propagate(self):
        self.model.generate_content.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(RuntimeError):
            self.adapter.generate_json(["p"], SONG_INFO_SCHEMA)
