from locatorpicker.dom import parse_html
from locatorpicker.locator_generator import synthesize
from locatorpicker.verifier import MARKER_ATTRIBUTE, clear_markers, resolve, resolve_with_mode, verify

FIXTURES = [
    (
        "<header><nav aria-label='Main'><a href='/'>Home</a><a href='/docs'>Docs</a></nav></header>"
        "<main><h1>Welcome</h1>"
        "<section aria-label='Shipping'><button>Submit</button></section>"
        "<section aria-label='Billing'><button>Submit</button></section>"
        "<img alt='Logo'><p title='Fine print'>Terms apply</p></main>"
    ),
    (
        "<form aria-label='Login'>"
        "<label for='user'>Username</label><input id='user' name='user'>"
        "<input type='password' placeholder='Password'>"
        "<button data-testid='login'>Sign in</button><button type='reset'>Clear</button>"
        "</form><div><span>one</span><span>one</span></div>"
    ),
    (
        "<table><tr><td>1</td><td>Apple</td></tr><tr><td>2</td><td>Pear</td></tr></table>"
        "<ul class='menu'><li class='menu-item'>Edit</li><li class='menu-item'>Edit</li></ul>"
    ),
]


def _document(body: str):
    return parse_html(f"<html><head><title>t</title></head><body>{body}</body></html>")


def test_rendered_locators_round_trip_in_both_dialects() -> None:
    for body in FIXTURES:
        document = _document(body)
        for node in document.select("body *"):
            for dialect in ("pytest", "js"):
                result = synthesize(node, document, dialect)
                if result.severity != "none":
                    continue
                nodes = resolve(result.text, document)
                assert len(nodes) == 1 and nodes[0] is node, result.text


def test_verify_counts_and_marks() -> None:
    document = _document("<button>Only</button><a href='#'>Link</a>")
    result = verify("getByRole('button')", document)
    assert result.count == 1
    assert result.mode == "locator"
    assert result.nodes[0].get(MARKER_ATTRIBUTE) == "true"


def test_verify_nonexistent_class_returns_zero_and_clears_markers() -> None:
    document = _document("<button>Only</button>")
    first = verify("button", document)
    assert first.count == 1
    assert first.mode == "css"

    second = verify(".nonexistent-class", document, previous=first.nodes)
    assert second.count == 0
    assert document.soup.find_all(attrs={MARKER_ATTRIBUTE: True}) == []


def test_css_selector_results_are_not_filtered_by_visibility() -> None:
    document = _document("<div hidden class='box'>a</div><div class='box'>b</div>")
    result = resolve_with_mode(".box", document)
    assert result.mode == "css"
    assert result.count == 2


def test_malformed_text_is_zero_matches() -> None:
    document = _document("<button>Only</button>")
    for text in ("", "getByRole(", "page.getByRole('button').nth(0)", "div[[[", "###"):
        assert resolve(text, document) == []
        assert verify(text, document).count == 0


def test_chained_text_matches_inside_each_scope() -> None:
    document = _document(
        "<section aria-label='A'><button>Go</button></section>"
        "<section aria-label='B'><button>Go</button></section>"
    )
    nodes = resolve('page.get_by_role("region").get_by_role("button", name="Go")', document)
    assert len(nodes) == 2
    nodes = resolve('page.getByRole("region", { name: "B" }).getByText("Go", { exact: true })', document)
    assert len(nodes) == 1
    assert nodes[0].find_parent("section").get("aria-label") == "B"


def test_annotated_text_still_resolves() -> None:
    document = _document("<p>Hello</p><p>Hello</p>")
    result = synthesize(document.select("p")[0], document)
    annotated = f"{result.text} # WARNING: fragile locator."
    assert len(resolve(annotated, document)) == len(resolve(result.text, document))


def test_clear_markers_removes_stale_attributes() -> None:
    document = _document(f"<span {MARKER_ATTRIBUTE}='true'>x</span>")
    assert clear_markers(document) == 1
    assert document.soup.find_all(attrs={MARKER_ATTRIBUTE: True}) == []
