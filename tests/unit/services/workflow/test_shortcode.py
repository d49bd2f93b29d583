"""Unit tests for prompt shortcodes and response parsing."""

import random

import pytest

from app.services.workflow.context import Chapter
from app.services.workflow.shortcode import (
    extract_data,
    generate_image_prompts,
    parse_outline,
    parse_prompt_list,
    process,
    select_random_idea,
    split_ideas,
    split_script,
    split_text,
    word_count,
)


class TestProcess:
    """Tests for shortcode substitution."""

    @pytest.mark.unit
    def test_replaces_known_shortcodes(self):
        result = process("Story about {{IDEAS}} on {{CHANNEL_NAME}}", {
            "IDEAS": "a ghost ship",
            "CHANNEL_NAME": "Night Tales",
        })

        assert result == "Story about a ghost ship on Night Tales"

    @pytest.mark.unit
    def test_missing_known_shortcode_becomes_empty(self):
        assert process("Hook: {{HOOK}}!", {}) == "Hook: !"

    @pytest.mark.unit
    def test_unknown_shortcode_left_untouched(self):
        assert process("Keep {{MYSTERY}} as is", {"MYSTERY": "x"}) == "Keep {{MYSTERY}} as is"

    @pytest.mark.unit
    def test_chapter_shortcodes(self):
        chapter = Chapter(title="The Fog", summary="Fog rolls in", content="It was cold.")

        result = process(
            "{{CHAPTER_NAME}} / {{CHAPTER_DESCRIPTION}} / {{CHAPTER_CONTENT}}", {}, chapter
        )

        assert result == "The Fog / Fog rolls in / It was cold."


class TestIdeas:
    """Tests for idea splitting and selection."""

    @pytest.mark.unit
    def test_split_ideas_drops_blanks(self):
        assert split_ideas(" one ---\n--- two---three ") == ["one", "two", "three"]

    @pytest.mark.unit
    def test_custom_delimiter(self):
        assert split_ideas("a|b", "|") == ["a", "b"]

    @pytest.mark.unit
    def test_empty_list_returns_none(self):
        assert select_random_idea("  ---  ") is None

    @pytest.mark.unit
    def test_single_idea_repeats(self):
        assert select_random_idea("only one", last_used="only one") == "only one"

    @pytest.mark.unit
    def test_avoids_last_used(self):
        rng = random.Random(1)
        picks = {
            select_random_idea("a---b", last_used="a", rng=rng) for _ in range(20)
        }

        assert picks == {"b"}


class TestExtractData:
    """Tests for marker extraction."""

    @pytest.mark.unit
    def test_between_markers(self):
        assert extract_data("Sure!\n---\nA dark sea\n---\nEnjoy") == "A dark sea"

    @pytest.mark.unit
    def test_without_markers_returns_stripped(self):
        assert extract_data("  plain text  ") == "plain text"


class TestParseOutline:
    """Tests for outline parsing."""

    @pytest.mark.unit
    def test_json_outline_in_code_fence(self):
        response = (
            "```json\n"
            '{"title": "Echoes", "summary": "A radio picks up voices.", '
            '"chapters": [{"name": "Static", "description": "Noise"}, "Voices"]}\n'
            "```"
        )

        outline = parse_outline(response)

        assert outline.title == "Echoes"
        assert outline.summary == "A radio picks up voices."
        assert [chapter.title for chapter in outline.chapters] == ["Static", "Voices"]
        assert outline.chapters[0].summary == "Noise"

    @pytest.mark.unit
    def test_text_outline(self):
        response = (
            "Title: The Bell\n"
            "Summary: A bell rings under the lake.\n"
            "Chapter 1: Ripples - Something stirs\n"
            "Chapter 2: Old-Town Legends\n"
        )

        outline = parse_outline(response)

        assert outline.title == "The Bell"
        assert outline.chapters[0].title == "Ripples"
        assert outline.chapters[0].summary == "Something stirs"
        assert outline.chapters[1].title == "Old-Town Legends"
        assert outline.chapters[1].summary == ""

    @pytest.mark.unit
    def test_outline_without_chapters_is_rejected(self):
        assert parse_outline('{"title": "Lonely", "chapters": []}') is None

    @pytest.mark.unit
    def test_garbage_is_rejected(self):
        assert parse_outline("I'd rather not.") is None


class TestPromptLists:
    """Tests for image prompt parsing."""

    @pytest.mark.unit
    def test_numbered_list(self):
        response = "Here you go:\n1. A foggy pier\n2) A lantern\n- A gull"

        assert parse_prompt_list(response) == ["A foggy pier", "A lantern", "A gull"]

    @pytest.mark.unit
    def test_plain_lines_fallback(self):
        assert parse_prompt_list("first\n\nsecond") == ["first", "second"]

    @pytest.mark.unit
    def test_generate_image_prompts(self):
        assert generate_image_prompts(2, "A pier") == [
            "A pier (Image 1/2)",
            "A pier (Image 2/2)",
        ]


class TestSplitting:
    """Tests for narration text splitting."""

    @pytest.mark.unit
    def test_split_by_sentences(self):
        text = "One. Two! Three? Four."

        assert split_text(text, 2) == ["One. Two!", "Three? Four."]

    @pytest.mark.unit
    def test_split_by_words_when_few_sentences(self):
        assert split_text("alpha beta gamma", 2) == ["alpha beta", "gamma"]

    @pytest.mark.unit
    def test_split_never_exceeds_units(self):
        assert split_text("solo", 4) == ["solo"]

    @pytest.mark.unit
    def test_split_empty_text(self):
        assert split_text("", 3) == [""]

    @pytest.mark.unit
    def test_split_script_by_paragraph(self):
        script = "P1.\n\nP2.\n\nP3."

        assert split_script(script, 2) == ["P1.\n\nP2.", "P3."]

    @pytest.mark.unit
    def test_split_script_pads_short_scripts(self):
        assert split_script("Hello.", 3) == ["Hello.", "", ""]

    @pytest.mark.unit
    def test_word_count(self):
        assert word_count("  three little words ") == 3
