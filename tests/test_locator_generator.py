import pytest

from locatorpicker import locator_generator
from locatorpicker.dom import parse_html
from locatorpicker.introspection import ReferenceIndex
from locatorpicker.locator_generator import LocatorSynthesizer, synthesize, synthesize_expression
from locatorpicker.verifier import match_segments, resolve


def _document(body: str):
    return parse_html(f"<html><head><title>Fixture</title></head><body>{body}</body></html>")


def _resolves_to(expression, document, node) -> bool:
    matches = match_segments(list(expression.segments), document)
    return len(matches) == 1 and matches[0] is node


def test_test_id_is_preferred() -> None:
    document = _document('<button data-testid="submit-1">Submit</button>')
    button = document.select("button")[0]
    result = synthesize(button, document)
    assert result.strategy == "test_id"
    assert result.severity == "none"
    assert result.expression.head.value == "submit-1"
    assert result.text == 'page.get_by_test_id("submit-1")'


def test_duplicate_test_id_is_kept_with_warning() -> None:
    document = _document('<button data-testid="dup">A</button><button data-testid="dup">B</button>')
    result = synthesize(document.select("button")[1], document)
    assert result.strategy == "test_id"
    assert result.severity == "warning"


def test_image_alt_text_scenario() -> None:
    document = _document('<img alt="Logo" src="/logo.png"><p>About us</p>')
    image = document.select("img")[0]
    result = synthesize(image, document, "js")
    assert result.strategy == "alt_text"
    assert result.expression.head.value == "Logo"
    assert result.expression.head.options.exact
    assert result.severity == "none"
    assert result.text == 'page.getByAltText("Logo", { exact: true })'


def test_role_name_prefers_exact_match() -> None:
    document = _document("<button>Save</button><button>Save and close</button>")
    first, second = document.select("button")
    assert synthesize(first, document).text == 'page.get_by_role("button", name="Save", exact=True)'
    assert synthesize(second, document).text == 'page.get_by_role("button", name="Save and close", exact=True)'


def test_label_for_roleless_node() -> None:
    document = _document('<div aria-label="Notes" contenteditable="true"></div><p>Other</p>')
    result = synthesize(document.select("div")[0], document)
    assert result.strategy == "label"
    assert result.text == 'page.get_by_label("Notes", exact=True)'


def test_placeholder_tier() -> None:
    document = _document('<input placeholder="Email address"><input placeholder="Password">')
    field = document.select("input")[0]
    synthesizer = LocatorSynthesizer(target=field, document=document)
    expression = synthesizer._try_placeholder()
    assert expression is not None
    assert expression.head.kind == "Placeholder"
    assert _resolves_to(expression, document, field)


def test_chain_through_named_ancestor_for_duplicate_buttons() -> None:
    document = _document(
        '<section aria-label="Shipping"><button>Submit</button></section>'
        '<section aria-label="Billing"><button>Submit</button></section>'
    )
    target = document.select("section")[1].select("button")[0]
    result = synthesize(target, document)
    assert result.strategy == "ancestor_chain"
    assert result.expression.is_chained
    assert result.severity == "none"
    assert result.text == (
        'page.get_by_role("region", name="Billing", exact=True)'
        '.get_by_role("button", name="Submit", exact=True)'
    )
    assert _resolves_to(result.expression, document, target)


def test_sibling_buttons_chain_with_structural_child() -> None:
    document = _document('<form aria-label="Checkout"><button>Submit</button><button>Submit</button></form>')
    first, second = document.select("button")
    for target in (first, second):
        result = synthesize(target, document)
        assert result.expression.is_chained
        assert result.expression.head.kind == "RoleName"
        assert result.expression.tail.kind == "StructuralPath"
        assert _resolves_to(result.expression, document, target)
    assert synthesize(second, document).text.endswith('.locator("button:nth-of-type(2)")')


def test_text_fallback_is_a_warning() -> None:
    document = _document("<p>Hello</p><p>Hello</p>")
    result = synthesize(document.select("p")[0], document)
    assert result.strategy == "text_fallback"
    assert result.severity == "warning"
    assert result.text == 'page.get_by_text("Hello")'


def test_structural_path_fallback_is_a_warning() -> None:
    document = _document("<div><span></span><span></span></div>")
    target = document.select("span")[1]
    result = synthesize(target, document)
    assert result.strategy == "structural_path"
    assert result.severity == "warning"
    assert result.text == 'page.locator("body > div > span:nth-of-type(2)")'


def test_tier_crash_falls_back_to_tag(monkeypatch: pytest.MonkeyPatch) -> None:
    document = _document("<button>Go</button>")

    def _boom(self):
        raise RuntimeError("boom")

    monkeypatch.setattr(LocatorSynthesizer, "_try_role_name", _boom)
    result = synthesize(document.select("button")[0], document, "js")
    assert result.severity == "critical"
    assert result.strategy == "tag"
    assert result.text == 'page.locator("button")'


def test_synthesize_never_raises_when_expression_building_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    document = _document("<a href='#'>Home</a>")

    def _boom(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(locator_generator, "synthesize_expression", _boom)
    result = synthesize(document.select("a")[0], document)
    assert result.severity == "critical"
    assert result.text == 'page.locator("a")'


def test_none_severity_results_resolve_to_their_target() -> None:
    document = _document(
        '<header><nav aria-label="Main"><a href="/">Home</a><a href="/docs">Docs</a></nav></header>'
        '<main><h1>Welcome</h1><form aria-label="Signup">'
        '<label for="name">Name</label><input id="name">'
        '<input type="email" placeholder="you@example.com">'
        '<input type="checkbox" title="Subscribe">'
        '<button type="submit">Create account</button></form>'
        '<ul class="cards"><li class="card">A</li><li class="card">B</li></ul>'
        '<img alt="Hero"><span data-cy="badge">New</span></main>'
        '<footer><a href="/docs">Docs</a></footer>'
    )
    for node in document.select("body *"):
        expression = synthesize_expression(node, document)
        if expression.severity == "none":
            assert _resolves_to(expression, document, node), node
        assert expression.segments


def test_synthesis_is_deterministic() -> None:
    document = _document("<div><p>Hello</p><p>Hello</p><button>Ok</button></div>")
    for node in document.select("body *"):
        assert synthesize(node, document).text == synthesize(node, document).text


def test_hidden_duplicate_does_not_break_uniqueness() -> None:
    document = _document('<button style="display:none">Pay</button><button>Pay</button>')
    visible = document.select("button")[1]
    result = synthesize(visible, document)
    assert result.text == 'page.get_by_role("button", name="Pay", exact=True)'


def test_title_tier() -> None:
    document = _document('<span title="Close panel">x</span><span>x</span>')
    result = synthesize(document.select("span")[0], document)
    assert result.strategy == "title"
    assert result.severity == "none"
    assert result.text == 'page.get_by_title("Close panel", exact=True)'


def test_role_tier_without_name() -> None:
    document = _document('<input type="checkbox"><p>Terms</p>')
    result = synthesize(document.select("input")[0], document)
    assert result.strategy == "role"
    assert result.severity == "none"
    assert result.text == 'page.get_by_role("checkbox")'


def test_text_exact_tier() -> None:
    document = _document("<p>Hello</p><div>Other</div>")
    paragraph = document.select("p")[0]
    result = synthesize(paragraph, document)
    assert result.strategy == "text"
    assert result.severity == "none"
    assert result.text == 'page.get_by_text("Hello", exact=True)'
    assert _resolves_to(result.expression, document, paragraph)


def test_label_tier_needs_a_label_source() -> None:
    document = _document(
        '<p>Hello</p><span title="Tip">?</span>'
        '<label for="mail">Email</label><div id="mail" contenteditable="true"></div>'
        '<span id="cap">Notes</span><div aria-labelledby="cap"></div>'
    )
    paragraph, span = document.select("p")[0], document.select("span[title]")[0]
    assert LocatorSynthesizer(target=paragraph, document=document)._try_label() is None
    assert LocatorSynthesizer(target=span, document=document)._try_label() is None

    by_for = LocatorSynthesizer(target=document.select("#mail")[0], document=document)._try_label()
    by_ref = LocatorSynthesizer(target=document.select("div[aria-labelledby]")[0], document=document)._try_label()
    assert by_for is not None and by_for.head.value == "Email"
    assert by_ref is not None and by_ref.head.value == "Notes"


def test_label_tier_is_skipped_for_buttons_and_links() -> None:
    document = _document(
        '<button aria-label="Close">x</button><a href="/docs" aria-label="Docs">Docs</a>'
        '<div aria-label="Panel"></div>'
    )
    button, link, panel = document.select("button")[0], document.select("a")[0], document.select("div")[0]
    assert LocatorSynthesizer(target=button, document=document)._try_label() is None
    assert LocatorSynthesizer(target=link, document=document)._try_label() is None
    assert LocatorSynthesizer(target=panel, document=document)._try_label() is not None


def test_ancestor_chain_gives_up_past_depth_bound() -> None:
    nested = '<section aria-label="Outer"><div><div><div><div><button>Go</button></div></div></div></div></section>'
    document = _document(f"{nested}<button>Go</button>")
    target = document.select("section button")[0]

    result = synthesize(target, document)
    assert result.strategy == "text_fallback"
    assert result.severity == "warning"
    assert result.text == 'page.get_by_text("Go")'

    deeper = synthesize(target, document, ancestor_depth=5)
    assert deeper.strategy == "ancestor_chain"
    assert deeper.text == (
        'page.get_by_role("region", name="Outer", exact=True)'
        '.get_by_role("button", name="Go", exact=True)'
    )


def test_nearest_ancestor_wins() -> None:
    document = _document(
        '<nav aria-label="Site"><form aria-label="Inner"><button>Go</button></form></nav><button>Go</button>'
    )
    target = document.select("form button")[0]
    result = synthesize(target, document)
    assert result.strategy == "ancestor_chain"
    assert result.text == (
        'page.get_by_role("form", name="Inner", exact=True)'
        '.get_by_role("button", name="Go", exact=True)'
    )
    assert _resolves_to(result.expression, document, target)


def test_structural_path_with_hyphen_digit_class_resolves() -> None:
    document = _document('<div><i class="-1abc"></i><i class="-1abc"></i></div>')
    target = document.select("i")[1]
    result = synthesize(target, document)
    assert result.strategy == "structural_path"
    assert resolve(result.text, document) == [target]


def test_many_ids_share_one_reference_index(monkeypatch: pytest.MonkeyPatch) -> None:
    rows = "".join(
        f'<div id="r{i}"><span id="s{i}">Item {i}</span><button id="b{i}">Edit</button></div>' for i in range(700)
    )
    document = _document(rows)
    target = document.select("#b350")[0]

    built = []
    from_soup = ReferenceIndex.from_soup

    def _counting(soup):
        built.append(soup)
        return from_soup(soup)

    monkeypatch.setattr(ReferenceIndex, "from_soup", staticmethod(_counting))
    result = synthesize(target, document)
    assert len(built) == 1 and built[0] is document.soup
    assert result.severity == "none"
    assert _resolves_to(result.expression, document, target)
