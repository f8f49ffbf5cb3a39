from locatorpicker.models import Candidate, CandidateOptions, LocatorExpression
from locatorpicker.rendering import annotate, copyable_text, method_name, render_expression, render_segment


def _expression(*segments: Candidate, severity: str = "none") -> LocatorExpression:
    return LocatorExpression(segments=segments, severity=severity, strategy="test")


def test_method_names_per_dialect() -> None:
    candidate = Candidate(kind="AltText", value="Logo")
    assert method_name(candidate, "pytest") == "get_by_alt_text"
    assert method_name(candidate, "js") == "getByAltText"


def test_role_name_renders_name_and_exact() -> None:
    candidate = Candidate(kind="RoleName", value="button", options=CandidateOptions(name="Submit", exact=True))
    assert render_segment(candidate, "pytest") == 'get_by_role("button", name="Submit", exact=True)'
    assert render_segment(candidate, "js") == 'getByRole("button", { name: "Submit", exact: true })'


def test_substring_candidates_render_without_exact() -> None:
    candidate = Candidate(kind="Text", value="Welcome", options=CandidateOptions(exact=False))
    assert render_segment(candidate, "pytest") == 'get_by_text("Welcome")'


def test_test_id_and_structural_path_take_no_options() -> None:
    expression = _expression(
        Candidate(kind="TestId", value="cart"),
        Candidate(kind="StructuralPath", value="li:nth-of-type(2)"),
    )
    assert render_expression(expression, "pytest") == 'page.get_by_test_id("cart").locator("li:nth-of-type(2)")'
    assert render_expression(expression, "js") == 'page.getByTestId("cart").locator("li:nth-of-type(2)")'


def test_strings_are_escaped() -> None:
    candidate = Candidate(kind="Text", value='Say "hi"\\\n', options=CandidateOptions(exact=True))
    assert render_segment(candidate, "pytest") == 'get_by_text("Say \\"hi\\"\\\\\\n", exact=True)'


def test_annotate_adds_dialect_comment_for_fragile_results() -> None:
    text = 'page.locator("body > div")'
    assert annotate(text, "none") == text
    assert annotate(text, "warning", "pytest").startswith(text + " # WARNING:")
    assert annotate(text, "critical", "js").startswith(text + " // CRITICAL:")


def test_copyable_text_strips_the_comment() -> None:
    text = 'page.getByText("Save")'
    assert copyable_text(annotate(text, "warning", "js")) == text
    assert copyable_text(text) == text
