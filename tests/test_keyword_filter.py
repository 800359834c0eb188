from __future__ import annotations

from core.keyword_filter import KeywordFilter
from core.models import SourceMessage


def _message(text: str = "", **kwargs) -> SourceMessage:
    return SourceMessage(message_id=1, text=text, **kwargs)


def test_matches_case_insensitive_whole_word() -> None:
    keyword_filter = KeywordFilter(["react"])
    assert keyword_filter.is_match(_message("React developer needed"))


def test_word_boundary_rejects_partial_words() -> None:
    keyword_filter = KeywordFilter(["react"])
    assert not keyword_filter.is_match(_message("We are reacting to feedback"))
    assert not keyword_filter.is_match(_message("reactor maintenance"))


def test_empty_message_is_not_a_match() -> None:
    keyword_filter = KeywordFilter(["backend"])
    assert not keyword_filter.is_match(_message(""))


def test_extract_text_joins_all_parts_in_order() -> None:
    message = _message(
        "Body",
        caption="Caption",
        entity_texts=["#Hiring", ""],
        reply_text="Reply",
    )
    assert KeywordFilter.extract_text(message) == "body caption #hiring reply"


def test_caption_entities_and_reply_can_match() -> None:
    keyword_filter = KeywordFilter(["flutter"])
    assert keyword_filter.is_match(_message(caption="Flutter role"))
    assert keyword_filter.is_match(_message(entity_texts=["#flutter"]))
    assert keyword_filter.is_match(_message("see above", reply_text="Senior Flutter dev"))


def test_keywords_with_regex_characters_are_literal() -> None:
    keyword_filter = KeywordFilter(["node.js"])
    assert keyword_filter.is_match(_message("Node.js engineer"))
    assert not keyword_filter.is_match(_message("nodexjs engineer"))


def test_update_keywords_swaps_the_set() -> None:
    keyword_filter = KeywordFilter(["react"])
    keyword_filter.update_keywords(["Golang"])
    assert keyword_filter.keywords == ["golang"]
    assert keyword_filter.is_match(_message("golang backend"))
    assert not keyword_filter.is_match(_message("react frontend"))


def test_malformed_message_is_no_match() -> None:
    keyword_filter = KeywordFilter(["react"])
    assert not keyword_filter.is_match(None)  # type: ignore[arg-type]
    assert not keyword_filter.is_match(object())  # type: ignore[arg-type]


def test_blank_keywords_are_ignored() -> None:
    keyword_filter = KeywordFilter(["react"])
    keyword_filter.update_keywords(["", "  "])
    assert keyword_filter.keywords == []
    assert not keyword_filter.is_match(_message("anything at all"))
