"""Helpers for slicing the issues returned by style checks and suggestions."""

from typing import Dict, Iterable, List

from loguru import logger
from style_analysis_client.models import Issue, IssueCategory


def categorize_issues(issues: Iterable[Issue]) -> Dict[IssueCategory, List[Issue]]:
    """Group issues by category, with an entry (possibly empty) for every category"""
    categorized: Dict[IssueCategory, List[Issue]] = {
        category: [] for category in IssueCategory
    }
    for issue in issues:
        try:
            categorized[IssueCategory(issue.category)].append(issue)
        except ValueError:
            logger.warning(f"Unknown issue category: {issue.category}")
    return categorized


def get_issue_counts(issues: Iterable[Issue]) -> Dict[IssueCategory, int]:
    return {
        category: len(grouped)
        for category, grouped in categorize_issues(issues).items()
    }


def get_issues_by_category(
    issues: Iterable[Issue], category: IssueCategory
) -> List[Issue]:
    return [issue for issue in issues if issue.category == category.value]


def has_suggestion(issue: Issue) -> bool:
    return issue.suggestion is not None


def get_issues_with_suggestions(issues: Iterable[Issue]) -> List[Issue]:
    return [issue for issue in issues if has_suggestion(issue)]


def get_issues_without_suggestions(issues: Iterable[Issue]) -> List[Issue]:
    return [issue for issue in issues if not has_suggestion(issue)]
