"""
Unit tests for voicecall.core.validator.

Tests cover:
- Issue detection (unterminated span, foreign script, truncation)
- Cleanup of dangling reasoning spans and role prefixes
- Clarification fallback for empty output
"""

import pytest

from voicecall.core.validator import (
    IssueKind,
    ResponseValidator,
    ValidationResult,
    disallowed_script_pattern,
    strip_to_retry_script,
)


@pytest.fixture
def validator():
    return ResponseValidator()


class TestProcessResponse:

    def test_clean_answer_is_complete(self, validator):
        result = validator.process_response("Halo! Apa kabar?")
        assert result.is_complete is True
        assert result.issues == ()
        assert result.cleaned_text == "Halo! Apa kabar?"
        assert result.needs_retry is False

    def test_unterminated_span_needs_retry(self, validator):
        raw = "<think>a</think>Jawaban <think>b <think>c"
        result = validator.process_response(raw)
        assert result.issues == (IssueKind.UNTERMINATED_REASONING_SPAN,)
        assert result.needs_retry is True
        assert result.is_complete is False
        assert result.cleaned_text == "Jawaban"

    def test_foreign_script_needs_retry(self, validator):
        result = validator.process_response("Halo 你好 teman.")
        assert IssueKind.FOREIGN_SCRIPT_DETECTED in result.issues
        assert result.needs_retry is True

    def test_cjk_allowed_for_cjk_language(self):
        result = ResponseValidator(language="zh-CN").process_response("你好")
        assert result.issues == ()
        assert result.cleaned_text == "你好"

    def test_truncation_alone_does_not_need_retry(self, validator):
        raw = "pikiran</think>Ini adalah jawaban yang cukup panjang tetapi terpotong di tengah"
        result = validator.process_response(raw)
        assert result.issues == (IssueKind.APPEARS_TRUNCATED,)
        assert result.needs_retry is False
        assert result.is_complete is False
        assert result.cleaned_text == "Ini adalah jawaban yang cukup panjang tetapi terpotong di tengah"

    def test_not_truncated_with_sentence_end(self, validator):
        raw = "pikiran</think>Ini adalah jawaban yang cukup panjang dan diakhiri dengan titik."
        result = validator.process_response(raw)
        assert IssueKind.APPEARS_TRUNCATED not in result.issues

    def test_not_truncated_when_markers_balance(self, validator):
        raw = "Ini adalah jawaban yang cukup panjang tetapi tidak memakai tanda baca akhir"
        result = validator.process_response(raw)
        assert result.issues == ()

    def test_issue_order(self, validator):
        result = validator.process_response("<think>你好")
        assert result.issues == (
            IssueKind.UNTERMINATED_REASONING_SPAN,
            IssueKind.FOREIGN_SCRIPT_DETECTED,
        )

    def test_bare_role_prefix_falls_back_to_clarification(self, validator):
        result = validator.process_response("Asistenqu:")
        assert result.cleaned_text == "Maaf, bisa tolong ulangi pertanyaannya?"

    def test_reasoning_only_falls_back_to_clarification(self, validator):
        result = validator.process_response("<think>hanya berpikir</think>")
        assert result.cleaned_text == "Maaf, bisa tolong ulangi pertanyaannya?"

    def test_empty_input_never_raises(self, validator):
        result = validator.process_response("")
        assert result.is_complete is True
        assert result.cleaned_text == "Maaf, bisa tolong ulangi pertanyaannya?"

    def test_custom_ai_name_prefix_removed(self):
        result = ResponseValidator(ai_name="Nova").process_response("Nova: Hai!")
        assert result.cleaned_text == "Hai!"

    def test_conversation_preset_keeps_markdown(self, validator):
        result = validator.process_response("<think>x</think>**Halo** 😊")
        assert result.cleaned_text == "**Halo** 😊"

    def test_result_is_frozen(self):
        result = ValidationResult(is_complete=True, cleaned_text="x")
        with pytest.raises(Exception):
            result.cleaned_text = "y"  # type: ignore[misc]


class TestDisallowedScript:

    def test_pattern_none_for_cjk_languages(self):
        assert disallowed_script_pattern("ja-JP") is None
        assert disallowed_script_pattern("ko") is None
        assert disallowed_script_pattern("id-ID") is not None

    def test_retry_cleanup_keeps_latin1_only(self):
        assert strip_to_retry_script("Halo 你好こんにちは안녕", "id-ID") == "Halo "
        assert strip_to_retry_script("Привет, apa kabar? สวัสดี", "id-ID") == ", apa kabar? "
        assert strip_to_retry_script("Café à côté", "en-US") == "Café à côté"

    def test_retry_cleanup_leaves_cjk_languages_alone(self):
        assert strip_to_retry_script("你好", "zh") == "你好"
