"""Prompt and response templates for the triage gate.

Templates use named ``{placeholder}`` fields and are filled with render().
Every key here can be overridden from the YAML configuration file; these
constants are the defaults.

Oracle prompts ask for a single verdict token so replies can be matched
against a closed vocabulary. The two answer prompts (readme_answer and
unclear_answer) ask for free text instead.
"""

import re
from typing import Any, Mapping


_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def render(template: str, variables: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders in a single pass.

    Unknown placeholders are left untouched, and substituted values are
    not scanned again, so user text containing braces is inserted as-is.

    Args:
        template: Template text.
        variables: Placeholder values; non-strings are converted with str().

    Returns:
        The rendered text.
    """

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            value = variables[name]
            return "" if value is None else str(value)
        return match.group(0)

    return _PLACEHOLDER.sub(_substitute, template)


DEFAULT_PROMPTS: dict[str, str] = {
    "issue_spam": """You are moderating the issue tracker of an open source project.

Decide whether the following newly opened issue is spam: advertising, gibberish, off-topic content, abuse, or an empty submission with no real question or report.

Issue title: {issue_title}

Issue body:
{issue_body}

{template_analysis}

Reply with exactly one word: SPAM or NOT_SPAM.""",
    "readme_coverage": """You help maintainers answer questions that the project documentation already covers.

README:
{readme_content}

Pinned issues:
{pinned_issues_content}

New issue title: {issue_title}

New issue body:
{issue_body}

Is the question or problem in this issue fully answered by the README or the pinned issues above?
Reply with exactly one word: COVERED or NOT_COVERED.""",
    "readme_answer": """Answer the user's issue using only the documentation below. Quote or point to the relevant README section. Be concise and friendly. Do not invent features that are not documented.

README:
{readme_content}

Pinned issues:
{pinned_issues_content}

Issue title: {issue_title}

Issue body:
{issue_body}""",
    "issue_classification": """Classify the following issue into exactly one of these labels: {labels_options}

Issue title: {issue_title}

Issue content:
{user_content}

Reply with the label name only.""",
    "issue_quality": """You review bug reports for an open source project.

Issue title: {issue_title}

Issue content:
{user_content}

{quality_report}

Classify the report:
- UNCLEAR: the problem cannot be understood or reproduced from the description (missing steps, versions, errors).
- BASIC: a basic usage question or a problem easily solved by searching or reading the documentation.
- VALID: a clear, actionable report.

Reply with exactly one word: UNCLEAR, BASIC or VALID.""",
    "unclear_answer": """A user opened an unclear issue. Using only the README below, try to give them useful guidance (relevant setup steps, known limitations, what information to add).

README:
{readme_content}

Issue title: {issue_title}

Issue body:
{issue_body}

If the README contains nothing relevant, reply with exactly {no_answer_token}.""",
    "pr_spam": """You are moderating pull requests for an open source project.

Decide whether this pull request is spam: advertising, meaningless edits, unrelated content, or automated junk.

PR title: {pr_title}

PR description:
{pr_body}

File changes:
{file_changes}

Reply with exactly one word: SPAM or NOT_SPAM.""",
    "pr_quality": """Review the following pull request.

PR title: {pr_title}

PR description:
{pr_body}

File changes:
{file_changes}

Classify it:
- MALICIOUS: introduces harmful code, backdoors, credential theft or destructive changes.
- TRIVIAL: meaningless changes (whitespace only, random renames, self-promotion links).
- UNCLEAR: the purpose of the change cannot be determined.
- VALID: a meaningful contribution.

Reply with exactly one word: MALICIOUS, TRIVIAL, UNCLEAR or VALID.""",
    "pr_classification": """Classify the following pull request into exactly one of these labels: {labels_options}

PR title: {pr_title}

PR description:
{pr_body}

File changes:
{file_changes}

Reply with the label name only.""",
}


DEFAULT_RESPONSES: dict[str, str] = {
    "issue_closed": (
        "This issue has been automatically closed because it does not look like "
        "a genuine report or question. Please read the [README]({readme_url}) "
        "before opening a new issue."
    ),
    "issue_basic": (
        "This looks like a basic question that can be answered by searching "
        "existing issues or the documentation. Please search first before "
        "opening an issue. Closing and locking this issue."
    ),
    "issue_unclear": (
        "Thanks for the report! We could not understand the problem from the "
        "description. Please add more detail: steps to reproduce, expected and "
        "actual behavior, versions and any error output."
    ),
    "readme_answer_prefix": (
        "This question appears to be covered by the project documentation:\n\n"
    ),
    "unclear_smart_prefix": (
        "Your issue is missing some details, but the documentation may help:\n\n"
    ),
    "pr_closed": (
        "This pull request has been automatically closed because it does not "
        "look like a genuine contribution."
    ),
    "pr_invalid_commit": (
        "This pull request has been closed because its title does not follow the "
        "Conventional Commits format, e.g. `fix: correct null check` or "
        "`feat(parser): support comments`."
    ),
    "pr_malicious": (
        "This pull request has been closed because it appears to contain harmful "
        "changes."
    ),
    "pr_trivial": (
        "This pull request has been closed because the changes are not "
        "meaningful enough to review."
    ),
    "file_analysis_disabled": "File change analysis disabled.",
    "no_file_changes": "No file changes found.",
    "file_changes_truncated": (
        "... {hidden} more files not shown (total={total}, shown={shown})"
    ),
}
