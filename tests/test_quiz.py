from __future__ import annotations

import pytest

from quizlock.quiz import (
    Question,
    QuestionGroup,
    QuestionPack,
    default_pack,
    is_answer_correct,
    is_text_answer_correct,
    prepare_question,
)


def mc(qid: str, correct: int = 2) -> Question:
    return Question(
        id=qid,
        type="multiple_choice",
        text=f"Question {qid}",
        choices=["a", "b", "c", "d"],
        correct_index=correct,
    )


def text(qid: str, answer: str) -> Question:
    return Question(id=qid, type="text_input", text=f"Question {qid}", correct_answer=answer)


def make_pack() -> QuestionPack:
    return QuestionPack(
        questions=[mc("1"), mc("2"), text("3", "Paris")],
        groups=[
            QuestionGroup(id="g1", name="Choices", question_ids=["1", "2"]),
            QuestionGroup(id="g2", name="Capitals", question_ids=["3"]),
        ],
        selected_group_ids=["g2"],
    )


def test_selected_questions_follow_groups():
    pack = make_pack()
    assert [q.id for q in pack.selected_questions()] == ["3"]

    pack.selected_group_ids = ["g1", "g2"]
    assert [q.id for q in pack.selected_questions()] == ["1", "2", "3"]

    pack.selected_group_ids = ["nope"]
    assert pack.selected_questions() == []
    assert pack.random_question() is None


def test_prepared_choices_keep_the_right_answer():
    for _ in range(20):
        p = prepare_question(mc("1", correct=3))
        assert sorted(p.choices) == ["a", "b", "c", "d"]
        assert p.choices[p.correct_index] == "d"
        assert is_answer_correct(p, p.correct_index)
        assert not is_answer_correct(p, (p.correct_index + 1) % 4)
        assert not is_answer_correct(p, "d")


def test_text_answers_ignore_case_and_spaces():
    assert is_text_answer_correct("  paris ", "Paris")
    assert not is_text_answer_correct("Lyon", "Paris")

    p = prepare_question(text("3", "Paris"))
    assert p.choices is None
    assert is_answer_correct(p, "PARIS")
    assert not is_answer_correct(p, 0)


@pytest.mark.parametrize(
    "q",
    [
        Question(id="x", type="multiple_choice", text="t", choices=["a", "b"], correct_index=0),
        Question(id="x", type="multiple_choice", text="t", choices=["a", "b", "c", "d"], correct_index=4),
        Question(id="x", type="text_input", text="t"),
    ],
)
def test_invalid_questions_are_rejected(q):
    with pytest.raises(ValueError):
        prepare_question(q)


def test_pack_dict_keeps_selection():
    pack = make_pack()
    again = QuestionPack.from_dict(pack.to_dict())
    assert again == pack


def test_v1_pack_without_groups():
    pack = QuestionPack.from_dict({"questions": [mc("1").to_dict()]})
    assert pack.groups == []
    assert pack.selected_group_ids == []
    assert pack.schema_version == 2


def test_default_pack_is_ready_to_quiz():
    pack = default_pack()
    assert len(pack.selected_questions()) == 1
    assert pack.random_question() is not None
