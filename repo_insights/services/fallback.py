"""Deterministic commentary used when no LLM is configured or the LLM call fails"""

from repo_insights.models.summary import HighlightComment, LLMOutput, SummaryJSON

FALLBACK_HIGHLIGHT_COUNT = 3


def generate_template_fallback(summary: SummaryJSON) -> LLMOutput:
    """
    Build commentary from the summary numbers alone

    Args:
        summary: Aggregated run summary

    Returns:
        LLMOutput with an intro, one note per category, dark horse and
        repeater notes, and highlights for the first three top repos
    """
    meta = summary.meta

    intro = (
        f"This report analyzes the top {meta.top_n} {meta.filter_domain} repositories "
        f"based on {meta.window_days}-day star growth metrics. "
        f"The analysis covers {len(summary.categories)} categories across multiple programming languages."
    )

    category_notes = {
        category.name: (
            f"This category contains {category.count} repositories with an average "
            f"Heat_7 of {category.avg_heat_7:.0f} stars and average score of {category.avg_score:.0f}."
        )
        for category in summary.categories
    }

    if summary.dark_horses:
        dark_horse_notes = (
            f"Identified {len(summary.dark_horses)} dark horse projects showing exceptional scores "
            "in star growth, indicating rapidly emerging interest from the developer community."
        )
    else:
        dark_horse_notes = "No dark horse projects identified in this period."

    if summary.repeaters:
        repeaters_notes = (
            f"Found {len(summary.repeaters)} projects with consecutive appearances in top rankings, "
            "demonstrating sustained community interest and development momentum."
        )
    else:
        repeaters_notes = "No repeater projects identified in this period."

    highlights = [
        HighlightComment(
            repo=repo.repo_key,
            comment=(
                f"Ranked #{repo.rank} with {repo.heat_30} stars gained in the last {meta.window_days} days. "
                f"Category: {repo.category}. Language: {repo.language}. Score: {repo.score}."
            ),
            tone="neutral-analytical",
        )
        for repo in summary.top_repos[:FALLBACK_HIGHLIGHT_COUNT]
    ]

    return LLMOutput(
        intro=intro,
        category_notes=category_notes,
        dark_horse_notes=dark_horse_notes,
        repeaters_notes=repeaters_notes,
        highlights=highlights,
    )
