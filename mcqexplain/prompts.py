"""Prompt assembly for structured explanation requests.

``build_prompt`` turns an :class:`ExplanationRequest` into the
``(system_text, user_text)`` pair sent to the provider.  A deployment may
supply its own user template; the controller falls back to the built-in
template (``force_default=True``) once a reply has come back empty or
truncated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .schema import MAX_EVIDENCE, ExplanationRequest

if TYPE_CHECKING:
    from .config import ExplainConfig

SYSTEM_PROMPT_TAGS = """You are an experienced exam instructor who writes structured explanations for multiple-choice questions. Every reply must follow this tag document exactly.

<explanation>
  <summary>One-sentence conclusion covering the question and its answer, at least 20 characters.</summary>
  <answers>
    <answer option="A">Copy the text of option A from the question</answer>
    <!-- list every correct option separately -->
  </answers>
  <optionAnalysis>
    <item option="A" verdict="correct|wrong">
      <reason>Why this option is right or wrong, at least 20 characters, naming the rule, fact or reasoning.</reason>
    </item>
    <!-- cover every option in the order given -->
  </optionAnalysis>
  <keyPoints>
    <point>A tested concept or pitfall, 10 to 80 characters.</point>
  </keyPoints>
  <memoryAids>
    <aid type="MNEMONIC">A short memory technique; drop the aid element if none fits.</aid>
  </memoryAids>
  <citations>
    <citation>
      <title>Source title</title>
      <url>https://example.org/source (drop the citations section when no reliable source exists)</url>
      <quote>Key sentence from the source, 10 to 120 characters.</quote>
    </citation>
  </citations>
  <difficulty>1</difficulty>
  <insufficiency>false</insufficiency>
</explanation>

Rules:
1. Do not output JSON, Markdown or any commentary outside the document;
2. The option attribute of each answer must match the option identifiers of the question;
3. verdict is either correct or wrong, and every reason states its basis in at least 20 characters;
4. Set insufficiency to true and say why when the evidence is not enough to decide;
5. Between 1 and 5 point elements; at most 3 aid elements (type is one of ACRONYM, RHYMING, RULE, STORY, MNEMONIC, OTHER); at most 5 citation elements;
6. difficulty is an integer from 1 to 5;
7. Memory aids and citations may be omitted, but the document must stay well formed."""

TEMPLATE_CLOSING_INSTRUCTION = "Reply strictly with the tag document described in the system instructions."

TAG_SKELETON = """<explanation>
  <summary></summary>
  <answers>
    <answer option="A"></answer>
  </answers>
  <optionAnalysis>
    <item option="A" verdict="correct">
      <reason></reason>
    </item>
  </optionAnalysis>
  <keyPoints>
    <point></point>
  </keyPoints>
  <memoryAids>
    <aid type="MNEMONIC"></aid>
  </memoryAids>
  <citations>
    <citation>
      <title></title>
      <url></url>
      <quote></quote>
    </citation>
  </citations>
  <difficulty></difficulty>
  <insufficiency>false</insufficiency>
</explanation>"""

_STYLE_PLACEHOLDER = re.compile(r"\{\{\s*AI_STYLE\s*\}\}", re.IGNORECASE)
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class PromptOptions:
    """Per-attempt prompt switches."""

    force_default: bool = False
    include_question: bool = True
    include_options: bool = True
    custom_template: Optional[str] = None
    system_override: Optional[str] = None
    style: Optional[str] = None

    @classmethod
    def from_config(cls, config: "ExplainConfig", force_default: bool = False) -> "PromptOptions":
        return cls(
            force_default=force_default,
            include_question=config.include_question,
            include_options=config.include_options,
            custom_template=config.user_template,
            system_override=config.system_prompt,
            style=config.style_prompt,
        )


def format_options(request: ExplanationRequest) -> str:
    return "\n".join(f"{opt.id}. {opt.text}" for opt in request.options)


def format_answers(request: ExplanationRequest) -> str:
    return ", ".join(request.correct_answers)


def render_template(template: str, values: dict[str, str]) -> str:
    """Replace ``{{ key }}`` placeholders; unknown placeholders are left alone."""
    result = template
    for key, value in values.items():
        pattern = re.compile(r"\{\{\s*" + re.escape(key) + r"\s*\}\}")
        result = pattern.sub(lambda _m, v=value: v, result)
    return result


def apply_style(base_prompt: Optional[str], style: Optional[str]) -> Optional[str]:
    """Merge an answer-style instruction into a system prompt.

    A ``{{ AI_STYLE }}`` placeholder in the base prompt is replaced in place;
    otherwise the style is appended after a blank line.
    """
    style_text = (style or "").strip()
    if not base_prompt:
        return style_text or None

    if _STYLE_PLACEHOLDER.search(base_prompt):
        replaced = _STYLE_PLACEHOLDER.sub(lambda _m: style_text, base_prompt)
        return _EXCESS_NEWLINES.sub("\n\n", replaced).strip()

    if not style_text:
        return base_prompt

    combined = f"{base_prompt.strip()}\n\n{style_text}"
    return _EXCESS_NEWLINES.sub("\n\n", combined).strip()


def build_system_prompt(options: PromptOptions) -> str:
    override = (options.system_override or "").strip()
    base = override or SYSTEM_PROMPT_TAGS
    return apply_style(base, options.style) or base


def _evidence_section(request: ExplanationRequest) -> str:
    if not request.evidence:
        return "[Evidence] None supplied; rely on textbook and regulatory knowledge."
    lines = [
        f"- Evidence: {item.title}\n  URL: {item.url}\n  Quote: {item.quote}"
        for item in request.evidence[:MAX_EVIDENCE]
    ]
    return f"[Evidence] up to {MAX_EVIDENCE} items\n" + "\n".join(lines)


def build_user_prompt(request: ExplanationRequest, options: PromptOptions) -> str:
    options_text = format_options(request)
    answer_text = format_answers(request)

    template = options.custom_template
    if template and template.strip() and not options.force_default:
        rendered = render_template(
            template,
            {
                "question": request.question_title if options.include_question else "",
                "options": options_text if options.include_options else "",
                "standard_answer": answer_text,
                "syllabus_path": request.syllabus_path or "",
            },
        )
        return f"{rendered.strip()}\n\n{TEMPLATE_CLOSING_INSTRUCTION}"

    sections: list[str] = []
    if options.include_question:
        sections.append(f"[Question] {request.question_title}")
    if options.include_options:
        sections.append(f"[Options]\n{options_text}")
    sections.append(f"[Standard answer] {answer_text}")
    if request.syllabus_path:
        sections.append(f"[Syllabus] {request.syllabus_path}")
    sections.append(_evidence_section(request))
    sections.append(f"[Output template] Follow this structure:\n{TAG_SKELETON}")
    sections.append("Reply with the tag document only, without any extra commentary.")
    return "\n\n".join(sections)


def build_prompt(request: ExplanationRequest, options: PromptOptions) -> tuple[str, str]:
    """Return ``(system_text, user_text)`` for one attempt. Never fails."""
    return build_system_prompt(options), build_user_prompt(request, options)
