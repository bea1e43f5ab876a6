from bannerscraper.pipelines.sections.prereqs import build_requirement_tree
from bannerscraper.pipelines.sections.schemas import BooleanExpr, CourseRef, ExamScoreRef


def row(and_or="", left="", subject="", number="", right="", test="", score=""):
    return {
        "and/or": and_or,
        "": left,
        "test": test,
        "score": score,
        "subject": subject,
        "coursenumber": number,
        "level": "Undergraduate",
        "grade": "D-",
        "1": right,
    }


A = CourseRef(subject="MATH", class_id="1341")
B = CourseRef(subject="PHYS", class_id="1151")
C = CourseRef(subject="PHYS", class_id="1161")


def test_a_and_b_or_c(subject_table):
    rows = [
        row(subject="Mathematics", number="1341"),
        row(and_or="And", left="(", subject="Physics", number="1151"),
        row(and_or="Or", subject="Physics", number="1161", right=")"),
    ]
    tree = build_requirement_tree(rows, subject_table)

    assert tree == BooleanExpr(type="and", values=[A, BooleanExpr(type="or", values=[B, C])])


def test_b_or_c_and_a(subject_table):
    rows = [
        row(left="(", subject="Mathematics", number="1341"),
        row(and_or="Or", subject="Physics", number="1151", right=")"),
        row(and_or="And", subject="Physics", number="1161"),
    ]
    tree = build_requirement_tree(rows, subject_table)

    assert tree == BooleanExpr(type="and", values=[BooleanExpr(type="or", values=[A, B]), C])


def test_root_defaults_to_and(subject_table):
    rows = [row(subject="Mathematics", number="1341"), row(subject="Physics", number="1151")]
    assert build_requirement_tree(rows, subject_table) == BooleanExpr(type="and", values=[A, B])


def test_or_marker_is_sticky(subject_table):
    rows = [
        row(subject="Mathematics", number="1341"),
        row(and_or="Or", subject="Physics", number="1151"),
        row(subject="Physics", number="1161"),
    ]
    tree = build_requirement_tree(rows, subject_table)
    assert tree.type == "or"
    assert tree.values == [A, B, C]


def test_test_score_leaf(subject_table):
    rows = [
        row(test="AP Calculus BC", score="4"),
        row(and_or="Or", subject="Mathematics", number="1341"),
    ]
    tree = build_requirement_tree(rows, subject_table)
    assert tree == BooleanExpr(type="or", values=[ExamScoreRef(test="AP Calculus BC", score="4"), A])


def test_nested_groups(subject_table):
    # A and ((B or C) and D)
    d = CourseRef(subject="CS", class_id="2500")
    rows = [
        row(subject="Mathematics", number="1341"),
        row(and_or="And", left="("),
        row(left="(", subject="Physics", number="1151"),
        row(and_or="Or", subject="Physics", number="1161", right=")"),
        row(and_or="And", subject="Computer Science", number="2500", right=")"),
    ]
    tree = build_requirement_tree(rows, subject_table)

    inner = BooleanExpr(type="or", values=[B, C])
    assert tree == BooleanExpr(
        type="and", values=[A, BooleanExpr(type="and", values=[inner, d])]
    )


def test_unknown_subject_is_skipped_with_warning(subject_table, caplog):
    rows = [
        row(subject="Underwater Basket Weaving", number="1000"),
        row(subject="Physics", number="1151"),
    ]
    tree = build_requirement_tree(rows, subject_table, source="POST getSectionPrerequisites")

    assert tree.values == [B]
    assert "Underwater Basket Weaving" in caplog.text


def test_left_paren_without_content_still_opens_group(subject_table):
    rows = [
        row(left="(", subject="Underwater Basket Weaving", number="1000"),
        row(and_or="Or", subject="Physics", number="1151", right=")"),
    ]
    tree = build_requirement_tree(rows, subject_table)
    assert tree == BooleanExpr(type="and", values=[BooleanExpr(type="or", values=[B])])


def test_html_entities_in_subject_names_resolve(subject_table):
    rows = [row(subject="Chemistry & Chemical Biology", number="1211")]
    tree = build_requirement_tree(rows, subject_table)
    assert tree.values == [CourseRef(subject="CHEM", class_id="1211")]


def test_empty_rows():
    from bannerscraper.pipelines.sections.subjects import SubjectAbbreviationTable

    tree = build_requirement_tree([], SubjectAbbreviationTable())
    assert tree.is_empty()
    assert tree.type == "and"
