"""Question pack as supplied by the quiz subsystem, and question preparation.

Only reading is supported here: picking a question from the selected groups,
shuffling choices and checking answers.
"""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

QuestionType = Literal["multiple_choice", "text_input"]


@dataclass(frozen=True)
class Question:
    id: str
    type: QuestionType
    text: str
    hint: Optional[str] = None
    choices: Optional[List[str]] = None  # exactly 4 for multiple choice
    correct_index: Optional[int] = None
    correct_answer: Optional[str] = None  # text input only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "text": self.text,
            "hint": self.hint,
            "choices": self.choices,
            "correct_index": self.correct_index,
            "correct_answer": self.correct_answer,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            id=str(data["id"]),
            type=data["type"],
            text=str(data["text"]),
            hint=data.get("hint"),
            choices=data.get("choices"),
            correct_index=data.get("correct_index"),
            correct_answer=data.get("correct_answer"),
        )


@dataclass(frozen=True)
class QuestionGroup:
    id: str
    name: str
    question_ids: List[str] = field(default_factory=list)


@dataclass
class QuestionPack:
    questions: List[Question] = field(default_factory=list)
    groups: List[QuestionGroup] = field(default_factory=list)
    selected_group_ids: List[str] = field(default_factory=list)
    schema_version: int = 2

    def selected_questions(self) -> List[Question]:
        """Questions of the selected groups; all questions when none is selected."""
        if not self.selected_group_ids:
            return list(self.questions)
        selected = set(self.selected_group_ids)
        ids = {qid for g in self.groups if g.id in selected for qid in g.question_ids}
        return [q for q in self.questions if q.id in ids]

    def random_question(self) -> Optional["PreparedQuestion"]:
        available = self.selected_questions()
        if not available:
            return None
        return prepare_question(random.choice(available))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "questions": [q.to_dict() for q in self.questions],
            "groups": [
                {"id": g.id, "name": g.name, "question_ids": list(g.question_ids)} for g in self.groups
            ],
            "selected_group_ids": list(self.selected_group_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionPack":
        return cls(
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
            groups=[
                QuestionGroup(id=str(g["id"]), name=str(g["name"]), question_ids=[str(i) for i in g.get("question_ids", [])])
                for g in data.get("groups", [])
            ],
            # v1 packs had no groups
            selected_group_ids=[str(i) for i in data.get("selected_group_ids", [])],
            schema_version=2,
        )


@dataclass(frozen=True)
class PreparedQuestion:
    question_id: str
    type: QuestionType
    text: str
    hint: Optional[str] = None
    choices: Optional[List[str]] = None  # shuffled
    correct_index: Optional[int] = None  # index into the shuffled choices
    correct_answer: Optional[str] = None


def prepare_question(q: Question) -> PreparedQuestion:
    if q.type == "multiple_choice":
        if not q.choices or len(q.choices) != 4 or q.correct_index not in range(4):
            raise ValueError(f"invalid multiple choice question {q.id}")
        order = list(range(len(q.choices)))
        random.shuffle(order)
        return PreparedQuestion(
            question_id=q.id,
            type=q.type,
            text=q.text,
            hint=q.hint,
            choices=[q.choices[i] for i in order],
            correct_index=order.index(q.correct_index),
        )
    if q.correct_answer is None:
        raise ValueError(f"invalid text input question {q.id}")
    return PreparedQuestion(
        question_id=q.id,
        type=q.type,
        text=q.text,
        hint=q.hint,
        correct_answer=q.correct_answer,
    )


def is_text_answer_correct(user_answer: str, correct_answer: str) -> bool:
    # case and surrounding whitespace are ignored
    return user_answer.strip().lower() == correct_answer.strip().lower()


def is_answer_correct(prepared: PreparedQuestion, answer: int | str) -> bool:
    if prepared.type == "multiple_choice":
        return isinstance(answer, int) and answer == prepared.correct_index
    return isinstance(answer, str) and is_text_answer_correct(answer, prepared.correct_answer or "")


def default_pack() -> QuestionPack:
    question = Question(
        id=str(uuid.uuid4()),
        type="multiple_choice",
        text="Sample question",
        hint="This is a sample question",
        choices=["Choice 1", "Choice 2", "Choice 3", "Choice 4"],
        correct_index=0,
    )
    group = QuestionGroup(id=str(uuid.uuid4()), name="Sample group", question_ids=[question.id])
    return QuestionPack(questions=[question], groups=[group], selected_group_ids=[group.id])
