import pytest

from shoppy.agents.extractor import (
    ORIGIN_ASSISTANT,
    ORIGIN_SELECTION,
    ORIGIN_USER,
    ProductExtractor,
    coerce_options,
    extract_color_keywords,
    extract_product_keywords,
    parse_option_lines,
    title_case,
)

OPTIONS_REPLY = """Here are three tees you might like:
1. **Classic Striped Tee** - $25.99
2. **Graphic Print Tee** - $22.50
3. Denim Button Shirt - $39.00
Let me know which one you like!"""


@pytest.fixture
def extractor():
    return ProductExtractor()


@pytest.mark.parametrize("message,expected", [
    ("I want 1 burgundy t-shirt", "Burgundy T-Shirt"),
    ("i want 1 burgundy tee", "Burgundy Tee"),
    ("I WANT A RED SHIRT", "Red Shirt"),
    ("give me the navy v-neck tee please", "Navy V-Neck Tee"),
    ("i need two hoodies", None),
])
def test_color_noun_after_intent_verb(extractor, message, expected):
    candidate = extractor.extract(message, ORIGIN_USER)
    if expected is None:
        assert candidate is None
    else:
        assert candidate.name == expected
        assert candidate.price == 0.0


def test_known_combination(extractor):
    candidate = extractor.extract("do you have that blue tee in medium?", ORIGIN_USER)
    assert candidate.name == "Blue Tee"


@pytest.mark.parametrize("message,expected", [
    ("one navy hoodie please", "Navy Hoodie"),
    ("two black hoodies for the trip", "Black Hoodie"),
    ("that white v-neck tee looks nice", "White V-Neck Tee"),
])
def test_user_color_noun_without_verb(extractor, message, expected):
    assert extractor.extract(message, ORIGIN_USER).name == expected


@pytest.mark.parametrize("reply,expected", [
    ("I've added the Burgundy V-Neck Tee to your cart!", "Burgundy V-Neck Tee"),
    ("Let's make sure that the Graphic Print Tee is added to your cart.", "Graphic Print Tee"),
    ("Great, I added the Classic Striped Tee for you.", "Classic Striped Tee"),
    ("Perfect choice with the Denim Button Shirt!", "Denim Button Shirt"),
    ("Done! The Navy Hoodie is now added.", "Navy Hoodie"),
])
def test_assistant_phrasings(extractor, reply, expected):
    assert extractor.extract(reply, ORIGIN_ASSISTANT).name == expected


def test_bold_span_needs_a_product_word(extractor):
    reply = "**Great news!** You picked the **Burgundy V-Neck Tee**."
    assert extractor.extract(reply, ORIGIN_ASSISTANT).name == "Burgundy V-Neck Tee"


def test_bare_color_noun_is_title_cased(extractor):
    assert extractor.extract("Sure thing, one burgundy tee coming up", ORIGIN_ASSISTANT).name == "Burgundy Tee"


def test_priced_line_fallback(extractor):
    reply = "Here's what I found:\n- Cozy Lounge Set - $45.00\nWant it?"
    candidate = extractor.extract(reply, ORIGIN_ASSISTANT)
    assert candidate.name == "Cozy Lounge Set"
    assert candidate.price == 45.0


def test_user_text_does_not_use_assistant_strategies(extractor):
    assert extractor.extract("I've added the Classic Striped Tee", ORIGIN_USER) is None


@pytest.mark.parametrize("message,index,name", [
    ("the second one", 2, "Graphic Print Tee"),
    ("option 3 please", 3, "Denim Button Shirt"),
    ("I'll take the classic striped", 1, "Classic Striped Tee"),
    ("the graphic print tee looks good", 2, "Graphic Print Tee"),
])
def test_selection_maps_to_shown_option(extractor, message, index, name):
    options = parse_option_lines(OPTIONS_REPLY)
    candidate = extractor.extract(message, ORIGIN_SELECTION, options)
    assert candidate.name == name
    assert candidate.selection_index == index


def test_selection_without_options_returns_none(extractor):
    assert extractor.extract("the first one", ORIGIN_SELECTION, []) is None


def test_selection_out_of_range(extractor):
    options = parse_option_lines("1. Navy Hoodie - $49.99")
    assert extractor.extract("the third one", ORIGIN_SELECTION, options) is None


def test_empty_text(extractor):
    assert extractor.extract("", ORIGIN_USER) is None
    assert extractor.extract(None, ORIGIN_ASSISTANT) is None


def test_parse_option_lines():
    options = parse_option_lines(OPTIONS_REPLY)
    assert [(o.index, o.name, o.price) for o in options] == [
        (0, "Classic Striped Tee", 25.99),
        (1, "Graphic Print Tee", 22.50),
        (2, "Denim Button Shirt", 39.00),
    ]


def test_coerce_options_accepts_stored_dicts():
    stored = [o.to_dict() for o in parse_option_lines(OPTIONS_REPLY)]
    stored.append({"price": 1.0})
    options = coerce_options(stored)
    assert len(options) == 3
    assert options[1].name == "Graphic Print Tee"


def test_keyword_helpers():
    assert extract_color_keywords("A Burgundy or navy tee") == ["burgundy", "navy"]
    assert extract_color_keywords("reddish") == []
    keywords = extract_product_keywords('any casual shirts or the "Lounge Set"?')
    assert "shirt" in keywords and "casual" in keywords and "Lounge Set" in keywords


def test_title_case():
    assert title_case("burgundy t-shirt") == "Burgundy T-Shirt"
