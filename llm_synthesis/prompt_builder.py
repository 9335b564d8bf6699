"""Prompt builder for the sales assistant.

The assistant only ever sees pre-aggregated facts: every number in the
prompt comes from the rendered fact sheet, never from the model.
"""

from typing import Iterable, Tuple

from app.domain.errors import InvalidQuestionError

MAX_QUESTION_LENGTH = 2000
RAW_CONTEXT_MAX_CHARS_PER_FILE = 10_000

_SYSTEM_INSTRUCTIONS = """\
You are a sales analysis assistant.

Answer questions about the user's uploaded sales spreadsheets only.

STRICT RULES:
- Use ONLY the facts provided below. Do not invent products, periods or numbers.
- If the facts do not contain the answer, say so and suggest uploading more data.
- When you compare periods or rank products, quote the figures you used.
- Politely decline questions unrelated to sales, products or these spreadsheets.
"""

_RAW_FILE_TEMPLATE = """\
=== Spreadsheet: {name} ===
{text}
"""


class SalesPromptBuilder:
    """Builds the deterministic prompt sent to the assistant.

    The same fact sheet and question always yield the same prompt text.
    """

    def build_prompt(self, fact_sheet_text: str, question: str) -> str:
        """Wrap the fact sheet and the user's question into one prompt.

        Args:
            fact_sheet_text: Output of render_fact_sheet for the owner.
            question: The user's question, 1-2000 characters after trimming.

        Returns:
            A fully formatted prompt string.

        Raises:
            InvalidQuestionError: If the question is blank or too long.
        """
        cleaned = self.clean_question(question)
        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"# FACTS\n\n{fact_sheet_text}\n\n"
            f"# QUESTION\n\n{cleaned}"
        )

    @staticmethod
    def clean_question(question: str) -> str:
        cleaned = (question or "").strip()
        if not cleaned:
            raise InvalidQuestionError("Question must not be empty.")
        if len(cleaned) > MAX_QUESTION_LENGTH:
            raise InvalidQuestionError(
                f"Question must be at most {MAX_QUESTION_LENGTH} characters."
            )
        return cleaned


def build_raw_context(
    files: Iterable[Tuple[str, str]],
    *,
    max_chars_per_file: int = RAW_CONTEXT_MAX_CHARS_PER_FILE,
) -> str:
    """Concatenate raw spreadsheet text, one block per file.

    Each file's text is cut to ``max_chars_per_file`` characters. Kept for
    callers that want the untouched spreadsheet content instead of the
    aggregated fact sheet.

    Args:
        files: (file name, text) pairs in the order they should appear.
        max_chars_per_file: Per-file character cap.

    Returns:
        The concatenated blocks, or an empty string when there are no files.
    """
    blocks = [
        _RAW_FILE_TEMPLATE.format(name=name, text=text[:max_chars_per_file])
        for name, text in files
    ]
    return "\n".join(blocks)
