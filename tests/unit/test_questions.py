"""Question variants and their shared evaluate contract."""
import pytest

from progression.errors import InvalidSubmission
from progression.questions import is_question_type, normalize_text, parse_question


@pytest.mark.unit
class TestMultipleChoice:
    content = {"question": "Quem?", "options": ["a", "b", "c"], "correctIndex": 2}

    def test_evaluate(self):
        q = parse_question("multiple_choice", self.content)
        assert q.evaluate(2) is True
        assert q.evaluate("2") is True
        assert q.evaluate(1) is False

    def test_bool_is_not_an_index(self):
        q = parse_question("multiple_choice", {**self.content, "correctIndex": 1})
        assert q.evaluate(True) is False

    def test_public_content_hides_answer(self):
        public = parse_question("multiple_choice", self.content).public_content()
        assert public == {"question": "Quem?", "options": ["a", "b", "c"]}

    def test_invalid_index_rejected(self):
        with pytest.raises(InvalidSubmission):
            parse_question("multiple_choice", {"options": ["a"], "correctIndex": 3})


@pytest.mark.unit
class TestTrueFalse:
    def test_evaluate_bool_and_words(self):
        q = parse_question("true_false", {"statement": "Deus e amor", "isTrue": True})
        assert q.evaluate(True) is True
        assert q.evaluate("Verdadeiro") is True
        assert q.evaluate("falso") is False
        assert q.evaluate(1) is False

    def test_requires_boolean_key(self):
        with pytest.raises(InvalidSubmission):
            parse_question("true_false", {"statement": "x", "isTrue": "yes"})

    def test_correct_answer(self):
        assert parse_question("true_false", {"statement": "x", "isTrue": False}).correct_answer() is False


@pytest.mark.unit
class TestFillBlank:
    def test_accent_case_and_space_insensitive(self):
        q = parse_question("fill_blank", {"sentence": "Orai sem ___", "correctAnswer": "Oração"})
        assert q.evaluate("  oracao ") is True
        assert q.evaluate("ORAÇÃO") is True
        assert q.evaluate("jejum") is False
        assert q.evaluate("") is False
        assert q.evaluate(None) is False

    def test_accepted_answers(self):
        q = parse_question("fill_blank", {"sentence": "x", "correctAnswer": "obras", "acceptedAnswers": ["as obras"]})
        assert q.evaluate("As  Obras") is True

    def test_public_content(self):
        q = parse_question("fill_blank", {"sentence": "A fe sem ___", "correctAnswer": "obras"})
        assert q.public_content() == {"question": "A fe sem ___"}

    def test_normalize_text(self):
        assert normalize_text("  Fé  e   Obras ") == "fe e obras"


@pytest.mark.unit
def test_unknown_type_rejected():
    with pytest.raises(InvalidSubmission):
        parse_question("essay", {})
    assert is_question_type("TRUE_FALSE") is True
    assert is_question_type("reflection") is False
