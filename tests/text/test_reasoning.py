"""
Unit tests for voicecall.text.reasoning.
"""

import re

from voicecall.text.reasoning import (
    ReasoningStripper,
    count_end_markers,
    count_start_markers,
    extract_reasoning,
    has_reasoning_markers,
    has_reasoning_spans,
    strip_reasoning,
)


class TestStripReasoning:

    def test_balanced_span(self):
        assert strip_reasoning("<think>a</think>Jawaban") == "Jawaban"

    def test_marker_variants_case_insensitive(self):
        assert strip_reasoning("<THINKING>x</THINKING>Halo") == "Halo"
        assert strip_reasoning("<reasoning>\nbaris\nlain\n</reasoning>\nHalo").strip() == "Halo"

    def test_multiple_spans_removed_non_greedy(self):
        assert strip_reasoning("<think>a</think>Satu <think>b</think>Dua") == "Satu Dua"

    def test_unterminated_span_cut_to_end(self):
        assert strip_reasoning("Halo <think>sedang berpikir tanpa akhir") == "Halo "

    def test_stray_end_marker_drops_prefix(self):
        assert strip_reasoning("pikiran yang bocor</think>Jawaban akhir") == "Jawaban akhir"

    def test_no_markers_untouched(self):
        assert strip_reasoning("Halo dunia") == "Halo dunia"

    def test_empty(self):
        assert strip_reasoning("") == ""


class TestLineHeuristics:

    def test_okay_let_me_line(self):
        assert strip_reasoning("Okay, so let me think about this.\nHalo!") == "Halo!"

    def test_i_need_to_line(self):
        assert strip_reasoning("I need to answer politely\nBaik.") == "Baik."

    def test_first_then_line(self):
        assert strip_reasoning("First, greet the user. Then, answer.\nHalo") == "Halo"

    def test_line_starting_with_keyword(self):
        assert strip_reasoning("Thinking about the question\nHalo") == "Halo"

    def test_single_unmarked_line_never_dropped(self):
        assert strip_reasoning("I need to pay the bill.") == "I need to pay the bill."
        assert strip_reasoning("Okay, let me explain.") == "Okay, let me explain."

    def test_marked_single_line_still_checked(self):
        assert strip_reasoning("pikiran</think>Okay, let me explain.") == ""

    def test_patterns_are_replaceable(self):
        keep_everything = ReasoningStripper(line_patterns=())
        assert strip_reasoning("I need to go\nYa", keep_everything) == "I need to go\nYa"

        custom = ReasoningStripper(line_patterns=[re.compile(r"^Catatan:")])
        assert custom.strip("Catatan: internal\nHalo") == "Halo"


class TestMarkers:

    def test_counts(self):
        text = "<think>a</think><think>b<Thinking>c"
        assert count_start_markers(text) == 3
        assert count_end_markers(text) == 1

    def test_has_reasoning_spans_needs_complete_pair(self):
        assert has_reasoning_spans("<think>a</think>b")
        assert not has_reasoning_spans("x</think>y")
        assert not has_reasoning_spans("<think>y")

    def test_has_reasoning_markers(self):
        assert has_reasoning_markers("x</think>y")
        assert has_reasoning_markers("<think>y")
        assert not has_reasoning_markers("tanpa tag")

    def test_extract(self):
        assert extract_reasoning("<think>rencana</think>Halo <think>sisa") == ["rencana", "sisa"]
        assert extract_reasoning("Halo") == []
