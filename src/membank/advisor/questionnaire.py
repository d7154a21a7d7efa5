"""Branching questionnaire engine and rule-based stack recommendations."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from ..errors import AmbiguousAnswerError


@dataclass(frozen=True)
class Choice:
    """One selectable answer."""

    key: str
    label: str


@dataclass(frozen=True)
class Question:
    """A question with ordered choices and answer-driven branching.

    ``next`` maps a choice key to the id of the question asked after it;
    other answers continue at ``default_next``. ``when`` restricts the
    question to sessions whose earlier answers match; a question whose
    condition fails is passed over to ``default_next``.
    """

    id: str
    prompt: str
    choices: tuple[Choice, ...]
    next: dict[str, Optional[str]] = field(default_factory=dict)
    default_next: Optional[str] = None
    when: dict[str, tuple[str, ...]] = field(default_factory=dict)
    help: Optional[str] = None

    def match(self, text: str) -> str:
        """Resolve free-text input to a choice key.

        Accepts the choice key, its 1-based number, its label, or an
        unambiguous prefix of the key or label (case-insensitive).

        Raises:
            AmbiguousAnswerError: If the input matches no choice or several.
        """
        answer = (text or "").strip().lower()
        if not answer:
            raise AmbiguousAnswerError("Please pick one of the listed options.")

        if answer.isdigit():
            index = int(answer) - 1
            if 0 <= index < len(self.choices):
                return self.choices[index].key
            raise AmbiguousAnswerError(
                f"'{text}' is out of range; choose 1-{len(self.choices)}."
            )

        for choice in self.choices:
            if answer in (choice.key.lower(), choice.label.lower()):
                return choice.key

        candidates = [
            choice.key for choice in self.choices
            if choice.key.lower().startswith(answer) or choice.label.lower().startswith(answer)
        ]
        if len(candidates) == 1:
            return candidates[0]
        if candidates:
            raise AmbiguousAnswerError(
                f"'{text}' could mean {', '.join(candidates)}; please be more specific."
            )
        raise AmbiguousAnswerError(f"'{text}' doesn't match any option.")

    def applies(self, answers: dict[str, str]) -> bool:
        return conditions_match(self.when, answers)


def conditions_match(conditions: dict[str, tuple[str, ...]], answers: dict[str, str]) -> bool:
    """True when every condition's question was answered with an allowed value."""
    return all(answers.get(qid) in allowed for qid, allowed in conditions.items())


class Questionnaire:
    """Walks a question table, following each answer's branch."""

    def __init__(self, questions: list[Question], start: Optional[str] = None):
        self.questions = {q.id: q for q in questions}
        self.start = start or questions[0].id

    def run(
        self,
        ask: Callable[[Question], str],
        preset: Optional[dict[str, str]] = None,
        on_invalid: Optional[Callable[[Question, AmbiguousAnswerError], None]] = None,
    ) -> dict[str, str]:
        """Ask questions until a branch ends.

        Args:
            ask: Returns the user's raw answer to a question.
            preset: Answers supplied up front (question id -> text); these are
                not asked and an invalid preset raises.
            on_invalid: Called when an asked answer doesn't resolve, before the
                question is asked again.

        Returns:
            Question id -> choice key for every question answered.
        """
        preset = preset or {}
        answers: dict[str, str] = {}
        current: Optional[str] = self.start
        visited: set[str] = set()

        while current is not None:
            if current in visited:
                raise ValueError(f"Question table loops back to '{current}'")
            visited.add(current)

            question = self.questions[current]
            if not question.applies(answers):
                current = question.default_next
                continue

            if question.id in preset:
                key = question.match(preset[question.id])
            else:
                key = self._ask_until_valid(question, ask, on_invalid)

            answers[question.id] = key
            current = question.next.get(key, question.default_next)

        return answers

    @staticmethod
    def _ask_until_valid(
        question: Question,
        ask: Callable[[Question], str],
        on_invalid: Optional[Callable[[Question, AmbiguousAnswerError], None]],
    ) -> str:
        while True:
            try:
                return question.match(ask(question))
            except AmbiguousAnswerError as e:
                if on_invalid is None:
                    raise
                on_invalid(question, e)


@dataclass(frozen=True)
class StackRule:
    """Recommend a stack for a category when all conditions hold."""

    category: str
    name: str
    guide: str
    reason: str
    conditions: dict[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass
class Recommendation:
    """A recommended stack and the guide that documents it."""

    category: str
    name: str
    guide: str
    reason: str
    installed: bool = False


def recommend(
    answers: dict[str, str],
    rules: list[StackRule],
    root: Optional[Path] = None,
) -> list[Recommendation]:
    """Pick one stack per category; the first matching rule wins.

    Args:
        answers: Question id -> choice key.
        rules: Ordered rule table.
        root: Memory-bank root; when given, recommendations whose guide
            exists there are marked installed.
    """
    picked: dict[str, Recommendation] = {}
    for rule in rules:
        if rule.category in picked:
            continue
        if not conditions_match(rule.conditions, answers):
            continue
        picked[rule.category] = Recommendation(
            category=rule.category,
            name=rule.name,
            guide=rule.guide,
            reason=rule.reason,
            installed=bool(root and (root / rule.guide).is_file()),
        )
    return list(picked.values())
