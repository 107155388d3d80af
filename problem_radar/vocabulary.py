"""Keyword, stopword and cue vocabularies for Problem Radar.

Every word list the engine consults lives in a single immutable
`Vocabulary` object that is passed to each component. The defaults
below can be overridden from the `vocabulary` section of the YAML config.
"""

import re
from dataclasses import dataclass, fields, replace
from typing import Any

# =============================================================================
# DEFAULT WORD LISTS
# =============================================================================

DEFAULT_STOPWORDS = frozenset([
    "a", "an", "the", "and", "or", "but", "for", "nor", "so", "yet",
    "of", "at", "by", "to", "into", "on", "onto", "in", "that", "this",
    "these", "those", "with", "about", "from", "up", "down", "over",
    "under", "again", "further", "then", "once", "here", "there", "when",
    "where", "why", "how", "all", "any", "both", "each", "few", "more",
    "most", "other", "some", "such", "no", "not", "only", "own", "same",
    "than", "too", "very", "can", "will", "just", "need", "have", "has",
    "had", "be", "is", "am", "are", "was", "were", "being", "been",
    "i", "we", "me", "my", "our", "you", "your", "their", "it", "do",
    "does", "did",
])

# Smaller list used when picking display keywords for a cluster.
DEFAULT_KEYWORD_STOPWORDS = frozenset([
    "to", "into", "from", "for", "and", "the", "a", "an", "of", "on",
    "in", "with", "my", "our", "their", "your", "how", "do", "i", "we",
])


@dataclass(frozen=True)
class ProblemCue:
    """A regex rule that flags a sentence as a problem statement.

    Patterns with a named `clause` group contribute only the captured
    clause; patterns without one contribute the whole sentence.
    """
    cue_id: str
    description: str
    pattern: str

    @property
    def regex(self) -> re.Pattern:
        return re.compile(self.pattern, re.IGNORECASE)


_CLAUSE = r"(?P<clause>[^.!?\n]{0,160})"

DEFAULT_PROBLEM_CUES = (
    ProblemCue("i_wish", "I wish there was/we had ...",
               r"\bi wish (?:there was|we had)\b" + _CLAUSE),
    ProblemCue("is_there_an_app", "Is there an app/tool/script ...",
               r"\bis there (?:an|a) (?:app|tool|script)\b" + _CLAUSE),
    ProblemCue("how_do_i", "How do I automate/speed up/batch ...",
               r"\bhow do i (?:automate|speed up|batch)\b" + _CLAUSE),
    ProblemCue("every_period", "Every day/week/month I have to ...",
               r"\bevery (?:day|week|month) i (?:have to|need to)\b" + _CLAUSE),
    ProblemCue("no_easy_way", "There's no easy way to ...",
               r"\bthere(?:'s| is) no easy way to\b" + _CLAUSE),
    ProblemCue("takes_forever", "It takes forever/hours to ...",
               r"\btakes (?:me )?(?:forever|hours) to\b" + _CLAUSE),
)

DEFAULT_KEYWORD_CUES = (
    ProblemCue("manual", "Contains manual(ly)", r"\bmanual(?:ly)?\b"),
    ProblemCue("repetitive", "Contains repetitive", r"\brepetitive\b"),
    ProblemCue("copy_paste", "Contains copy paste", r"\bcopy(?:-| )paste\b"),
    ProblemCue("spreadsheet_hell", "Contains spreadsheet hell", r"\bspreadsheet hell\b"),
)

DEFAULT_HIGHLIGHT_KEYWORDS = (
    "automate", "batch", "api", "csv", "workflow", "script", "zapier",
    "google sheets",
)

DEFAULT_PAIN_WORDS = (
    "manual", "repetitive", "tedious", "boring", "error-prone", "copy paste",
    "takes forever", "problem", "issue", "difficult", "hard", "struggle",
    "pain", "annoying", "frustrating",
)

DEFAULT_WTP_PATTERN = r"(willing to pay|i'?d pay|pay for|pricing|budget)"

# (trigger substrings, requirement) in priority order
DEFAULT_REQUIREMENT_RULES = (
    (("jira",), "Jira REST API (issues create/update)"),
    (("github",), "GitHub Issues API integration"),
    (("slack",), "Slack webhook/App event"),
    (("discord",), "Discord bot webhook"),
    (("gmail", "email"), "Gmail API or IMAP inbox polling"),
    (("sheet", "spreadsheet", "airtable", "csv"), "CSV import/export or Google Sheets API"),
    (("thumbnail", "image"), "Image generation API (Replicate/SDXL)"),
    (("invoice", "receipt", "pdf"), "PDF parsing pipeline (extraction rules + OCR fallback)"),
    (("notion",), "Notion API integration"),
    (("zapier",), "Zapier webhooks / auth token management"),
)

DEFAULT_REQUIREMENTS = (
    "CSV import/export",
    "Basic auth/token store",
    "Scheduled & on-demand runs",
)

# (regex, persona) checked in order, first hit wins
DEFAULT_AUDIENCE_RULES = (
    (r"youtube|thumbnail|creator", "YouTube creators & small video teams"),
    (r"invoice|account|bookkeep|receipt", "SMB operators & accountants"),
    (r"jira|github|backlog|sprint", "Product & engineering leads"),
    (r"teacher|classroom|student", "Educators & course teams"),
    (r"freelance|client", "Freelancers & consultants"),
)

DEFAULT_AUDIENCE = "Builders & operators dealing with repetitive workflows"

DEFAULT_FEATURE_RULES = (
    (("thumbnail", "image"), "Template-based image generation"),
    (("invoice",), "Line-item extraction & categorisation"),
    (("jira", "github"), "One-click issue creation with labels"),
    (("sheet", "csv"), "Spreadsheet import/export sync"),
    (("email",), "Inbox watcher for trigger keywords"),
)

DEFAULT_BASE_FEATURES = (
    "Batch automation with guardrails",
    "Preview & manual override",
    "Activity log with undo",
)


# =============================================================================
# VOCABULARY CONTAINER
# =============================================================================

@dataclass(frozen=True)
class Vocabulary:
    """All word lists used by extraction, clustering, scoring and synthesis."""
    stopwords: frozenset[str] = DEFAULT_STOPWORDS
    keyword_stopwords: frozenset[str] = DEFAULT_KEYWORD_STOPWORDS
    problem_cues: tuple[ProblemCue, ...] = DEFAULT_PROBLEM_CUES
    keyword_cues: tuple[ProblemCue, ...] = DEFAULT_KEYWORD_CUES
    highlight_keywords: tuple[str, ...] = DEFAULT_HIGHLIGHT_KEYWORDS
    pain_words: tuple[str, ...] = DEFAULT_PAIN_WORDS
    wtp_pattern: str = DEFAULT_WTP_PATTERN
    requirement_rules: tuple[tuple[tuple[str, ...], str], ...] = DEFAULT_REQUIREMENT_RULES
    default_requirements: tuple[str, ...] = DEFAULT_REQUIREMENTS
    audience_rules: tuple[tuple[str, str], ...] = DEFAULT_AUDIENCE_RULES
    default_audience: str = DEFAULT_AUDIENCE
    base_features: tuple[str, ...] = DEFAULT_BASE_FEATURES
    feature_rules: tuple[tuple[tuple[str, ...], str], ...] = DEFAULT_FEATURE_RULES

    @property
    def primary_cue_ids(self) -> frozenset[str]:
        """Cue ids that outrank generic keyword hits when picking a post's phrase."""
        return frozenset(cue.cue_id for cue in self.problem_cues)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Vocabulary":
        """Build a vocabulary from a config mapping, falling back to defaults.

        Args:
            data: Mapping taken from the `vocabulary` section of the config.

        Returns:
            Vocabulary with overridden lists.
        """
        vocab = cls()
        if not data:
            return vocab

        known = {f.name for f in fields(cls)}
        overrides: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            if key in ("stopwords", "keyword_stopwords"):
                overrides[key] = frozenset(str(v).lower() for v in value)
            elif key in ("highlight_keywords", "pain_words"):
                # matched against lower-cased text
                overrides[key] = tuple(str(v).lower() for v in value)
            elif key in ("problem_cues", "keyword_cues"):
                overrides[key] = tuple(
                    ProblemCue(
                        cue_id=c["id"],
                        description=c.get("description", ""),
                        pattern=c["pattern"],
                    )
                    for c in value
                )
            elif key in ("requirement_rules", "feature_rules"):
                overrides[key] = tuple(
                    (tuple(rule["triggers"]), rule["value"]) for rule in value
                )
            elif key == "audience_rules":
                overrides[key] = tuple(
                    (rule["pattern"], rule["value"]) for rule in value
                )
            elif isinstance(value, list):
                overrides[key] = tuple(value)
            else:
                overrides[key] = value

        return replace(vocab, **overrides)


_default_vocabulary: Vocabulary | None = None


def default_vocabulary() -> Vocabulary:
    """Get the shared built-in vocabulary."""
    global _default_vocabulary
    if _default_vocabulary is None:
        _default_vocabulary = Vocabulary()
    return _default_vocabulary
