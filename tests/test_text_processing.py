import pytest

from salesbot.keywords import CODE_LOOKUP_MARKER_RE, split_keywords, strip_intent_markers
from salesbot.similarity import edit_distance, similarity
from salesbot.utils import format_amount, normalize_header, normalize_text


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Fish Tank Kit", "fishtankkit"),
        ("  Curious\tFrog \n", "curiousfrog"),
        ("好奇青蛙 呢", "好奇青蛙"),
        ("月曆的嗎", "月曆"),
        ("", ""),
        (None, ""),
        ("呢", ""),
    ],
)
def test_normalize_text(raw, expected):
    assert normalize_text(raw) == expected


def test_normalize_text_keeps_inner_particles():
    assert normalize_text("的確好用的書") == "的確好用的書"


def test_normalize_header_folds_separators():
    assert normalize_header(" Restock ETA ") == normalize_header("restock_eta")
    assert normalize_header(None) == ""


def test_format_amount():
    assert format_amount(350.0) == "350"
    assert format_amount(12.5) == "12.5"


def test_split_keywords_strips_marker_and_splits_lines():
    assert split_keywords("check price\nItem One\nItem Two") == ["Item One", "Item Two"]


def test_split_keywords_repeated_markers_per_line():
    text = "查價 魚缸\n查價 月曆、青蛙\n庫存 筆記本"
    assert split_keywords(text) == ["魚缸", "月曆", "青蛙", "筆記本"]


def test_split_keywords_line_break_variants():
    text = "A\r\nB\rC\u2028D\u2029E"
    assert split_keywords(text) == ["A", "B", "C", "D", "E"]


def test_split_keywords_all_separators():
    assert split_keywords("a, b，c;d；e") == ["a", "b", "c", "d", "e"]


def test_split_keywords_keeps_duplicates_and_order():
    assert split_keywords("B\nA\nB") == ["B", "A", "B"]


@pytest.mark.parametrize("raw", ["", "   ", "\n\n,，;", "查價", "check price \n 庫存"])
def test_split_keywords_empty(raw):
    assert split_keywords(raw) == []


def test_split_keywords_whitespace_mode():
    assert split_keywords("A1 B2\tC3\nD4", split_on_whitespace=True) == ["A1", "B2", "C3", "D4"]


def test_split_keywords_idempotent_on_single_token():
    token = split_keywords("查價 FishTank")[0]
    assert split_keywords(token) == [token]


def test_split_keywords_keeps_order_word_in_names():
    assert split_keywords("查價 Order Form\n庫存 下單本") == ["Order Form", "下單本"]


def test_split_keywords_code_lookup_markers():
    text = "A1 查編號 B2\ncheck code C3"
    assert split_keywords(text, split_on_whitespace=True, markers=CODE_LOOKUP_MARKER_RE) == ["A1", "B2", "C3"]


def test_marker_needs_word_boundary_for_ascii():
    assert strip_intent_markers("recheck pricey") == "recheck pricey"
    assert strip_intent_markers("Check Price Calendar").strip() == "Calendar"


def test_similarity_identity_and_empty():
    assert similarity("curiousfrog", "curiousfrog") == 1.0
    assert similarity("", "") == 1.0
    assert similarity("abc", "") == 0.0


@pytest.mark.parametrize("a, b", [("kitten", "sitting"), ("calendar", "calender"), ("a", "xyz")])
def test_similarity_symmetric(a, b):
    assert similarity(a, b) == similarity(b, a)


def test_similarity_formula():
    assert edit_distance("kitten", "sitting") == 3
    assert similarity("kitten", "sitting") == pytest.approx((7 - 3) / 7)
