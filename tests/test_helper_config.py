import pytest


def test_string_value_is_stripped(monkeypatch, helper_config):
    monkeypatch.setenv("APP_API_KEY", "  secret  ")
    assert helper_config.get_string_val("APP_API_KEY") == "secret"


def test_blank_value_counts_as_unset(monkeypatch, helper_config):
    monkeypatch.setenv("APP_API_KEY", "   ")
    assert helper_config.get_string_val("APP_API_KEY", default="fallback") == "fallback"
    with pytest.raises(ValueError):
        helper_config.get_string_val("APP_API_KEY")


def test_missing_mandatory_value_raises(helper_config):
    with pytest.raises(ValueError, match="LLM_OPENAI_API_KEY"):
        helper_config.get_string_val("llm_openai_api_key")


def test_numbers_keep_their_kind(monkeypatch, helper_config):
    monkeypatch.setenv("CHUNK_SIZE", "800")
    monkeypatch.setenv("LLM_OPENAI_TEMPERATURE", "0.2")

    assert helper_config.get_number_val("CHUNK_SIZE") == 800
    assert isinstance(helper_config.get_number_val("CHUNK_SIZE"), int)
    assert helper_config.get_number_val("LLM_OPENAI_TEMPERATURE") == pytest.approx(0.2)


def test_invalid_number_raises(monkeypatch, helper_config):
    monkeypatch.setenv("CHUNK_SIZE", "lots")
    with pytest.raises(ValueError, match="not a valid number"):
        helper_config.get_number_val("CHUNK_SIZE", default=1000)


def test_int_value_truncates_floats(monkeypatch, helper_config):
    monkeypatch.setenv("RETRIEVAL_TOP_K", "4.0")
    assert helper_config.get_int_val("RETRIEVAL_TOP_K") == 4
    assert helper_config.get_int_val("CHUNK_OVERLAP", default=200) == 200


def test_optional_number_is_none_when_unset(monkeypatch, helper_config):
    assert helper_config.get_optional_number_val("CHAT_HISTORY_MAX_CHARS") is None
    monkeypatch.setenv("CHAT_HISTORY_MAX_CHARS", "4000")
    assert helper_config.get_optional_number_val("CHAT_HISTORY_MAX_CHARS") == 4000


@pytest.mark.parametrize("raw, expected", [("true", True), ("ON", True), ("1", True), ("no", False), ("0", False)])
def test_bool_values(monkeypatch, helper_config, raw, expected):
    monkeypatch.setenv("STORAGE_KEEP_FILES", raw)
    assert helper_config.get_bool_val("STORAGE_KEEP_FILES") is expected
