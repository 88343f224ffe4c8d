from __future__ import annotations

from repo_recon.models.repository import Repository

PARSE_QUERY_SYSTEM = (
    "You help developers find open-source GitHub repositories. Given a user's request, decide whether it "
    "describes a software need that GitHub repositories could satisfy. If it does not (gibberish, unrelated "
    "to software, or harmful), set is_valid to false and explain why in invalid_reason. Otherwise produce a "
    "short normalized_query, the technologies, problem_domains and architecture_patterns involved, and 1 to 3 "
    "GitHub repository search queries using GitHub search syntax (for example 'background jobs language:ruby')."
)

ANALYZE_REPOSITORY_SYSTEM = (
    "You are a senior engineer reviewing an open-source repository for other developers. Summarize what it "
    "does, who should use it, its strengths and weaknesses, and its maturity "
    "(one of: experimental, early, growing, mature, declining)."
)

DEEP_ANALYSIS_SYSTEM = (
    ANALYZE_REPOSITORY_SYSTEM
    + " You also have the README and the most discussed open issues; use them to judge documentation "
    "quality, maintenance health and recurring problems users hit."
)

COMPARE_SYSTEM = (
    "You compare open-source repositories for a developer's stated need. Rank every candidate (rank 1 is best), "
    "give each a 0-100 score with pros and cons relative to the need, and name the recommended_repo by its "
    "full_name with a short recommendation_reasoning. Only use full_name values from the candidate list."
)


def describe_repository(repo: Repository) -> str:
    topics = ", ".join(repo.topics or []) or "none"
    return (
        f"Repository: {repo.full_name}\n"
        f"Description: {repo.description or 'n/a'}\n"
        f"Language: {repo.language or 'n/a'}\n"
        f"Stars: {repo.stargazers_count}  Forks: {repo.forks_count}  Open issues: {repo.open_issues_count}\n"
        f"License: {repo.license or 'n/a'}\n"
        f"Topics: {topics}\n"
        f"Last push: {repo.github_pushed_at or 'unknown'}"
    )
