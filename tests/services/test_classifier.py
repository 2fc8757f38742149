from __future__ import annotations

from repo_insights.config.app_config import KeywordConfig
from repo_insights.models.repository import RepoMetadata
from repo_insights.services.classifier import RepoClassifier, build_search_text, matches_keyword


def _repo(name: str, description: str = "", topics: tuple[str, ...] = ()) -> RepoMetadata:
    return RepoMetadata(owner="acme", name=name, description=description, topics=topics)


def _keywords(**overrides) -> KeywordConfig:
    data = {
        "include": ["ai", "llm", "agent"],
        "exclude": ["tutorial"],
        "categories": {
            "LLM": ["llm", "gpt"],
            "Agents": ["agent", "autonomous"],
        },
    }
    data.update(overrides)
    return KeywordConfig.model_validate(data)


def test_exclude_wins_over_include() -> None:
    classifier = RepoClassifier(KeywordConfig(include=["ai"], exclude=["tutorial"], categories={}))
    repo = _repo("ai-tutorial", "Learn AI step by step", ("tutorial",))
    text = build_search_text(repo)

    assert classifier.matches_include(text)
    assert classifier.matches_exclude(text)
    assert classifier.classify([repo]) == []


def test_search_text_joins_name_description_and_topics_lowercased() -> None:
    repo = _repo("DeepAgent", "An LLM Runtime", ("Inference", "GPU"))

    assert build_search_text(repo) == "deepagent an llm runtime inference gpu"


def test_hyphenated_keyword_matches_as_substring() -> None:
    assert matches_keyword("great machine-learning toolkit", "machine-learning")
    assert matches_keyword("deep-machine-learning-kit", "machine-learning")
    assert not matches_keyword("machine learning toolkit", "machine-learning")


def test_word_keyword_matches_exact_plural_and_stem() -> None:
    assert matches_keyword("an llm server", "llm")
    assert matches_keyword("multiple llms here", "llm")
    assert matches_keyword("agentic workflows", "agent")
    assert matches_keyword("(agent), framework", "agent")


def test_short_keyword_does_not_stem_match() -> None:
    assert not matches_keyword("airflow scheduler", "ai")
    assert matches_keyword("open ai tooling", "ai")
    assert matches_keyword("collection of ais", "ai")


def test_classify_assigns_categories_in_declared_order() -> None:
    classifier = RepoClassifier(_keywords())

    result = classifier.classify([_repo("swarm", "autonomous agent built on gpt")])

    assert len(result) == 1
    assert result[0].categories == ("LLM", "Agents")
    assert result[0].primary_category == "Agents"


def test_primary_category_tie_goes_to_first_declared() -> None:
    classifier = RepoClassifier(_keywords())

    result = classifier.classify([_repo("bot", "llm agent")])

    assert result[0].categories == ("LLM", "Agents")
    assert result[0].primary_category == "LLM"


def test_repo_without_category_match_is_kept_uncategorized() -> None:
    classifier = RepoClassifier(_keywords(include=["ai"]))

    result = classifier.classify([_repo("notes", "ai reading notes")])

    assert len(result) == 1
    assert result[0].categories == ()
    assert result[0].primary_category == ""


def test_match_score_counts_include_and_category_lists_separately() -> None:
    classifier = RepoClassifier(_keywords())

    result = classifier.classify([_repo("helper", "llm agent")])

    # include: llm, agent (2) + LLM: llm (1) + Agents: agent (1)
    assert result[0].match_score == 4


def test_classify_preserves_input_order_and_drops_non_matching() -> None:
    classifier = RepoClassifier(_keywords())
    repos = [
        _repo("zeta", "llm server"),
        _repo("web-framework", "fast http server"),
        _repo("alpha", "an agent runtime"),
        _repo("course", "llm tutorial"),
    ]

    result = classifier.classify(repos)

    assert [item.metadata.name for item in result] == ["zeta", "alpha"]
