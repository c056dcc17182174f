"""
Configuration management and loading.

Handles usage limits and knowledge base files.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from resume_chat.core.knowledge import DEFAULT_KNOWLEDGE_BASE, Category, KnowledgeBase


@dataclass(frozen=True)
class UsageLimits:
    """Spending ceilings for the upstream model.

    Loaded once at startup and never mutated.
    """
    daily_request_limit: int = 50
    monthly_request_limit: int = 1000
    max_tokens_per_request: int = 500
    cost_per_1k_tokens: float = 0.002
    monthly_cost_limit: float = 5.00
    lifetime_cost_limit: float = 20.00

    def __post_init__(self):
        """Validate limit values are positive."""
        for f in fields(self):
            if getattr(self, f.name) <= 0:
                raise ValueError(f"{f.name} must be > 0")
        if self.monthly_cost_limit > self.lifetime_cost_limit:
            raise ValueError("monthly_cost_limit must not exceed lifetime_cost_limit")


_INT_LIMITS = {'daily_request_limit', 'monthly_request_limit', 'max_tokens_per_request'}
_FLOAT_LIMITS = {'cost_per_1k_tokens', 'monthly_cost_limit', 'lifetime_cost_limit'}


def _read_yaml(path: str, what: str) -> Any:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"{what} file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in {what} file {path}: {e}")

    if not raw:
        raise ValueError(f"{what} file is empty")
    if not isinstance(raw, dict):
        raise ValueError(f"{what} file must contain a mapping")
    return raw


def load_usage_limits(path: Optional[str] = None) -> UsageLimits:
    """Load and validate usage limits from a YAML file.

    Keys left out of the file keep their defaults. Unknown keys are
    rejected so a typo cannot silently leave a ceiling at its default.

    Args:
        path: Path to YAML file, or None for the built-in defaults

    Returns:
        Validated UsageLimits object

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the limits are invalid
    """
    if path is None:
        return UsageLimits()

    raw = _read_yaml(path, "Usage limits")

    unknown_keys = set(raw.keys()) - _INT_LIMITS - _FLOAT_LIMITS
    if unknown_keys:
        raise ValueError(f"Unknown usage limit keys: {unknown_keys}")

    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"'{key}' must be a number")
        if key in _INT_LIMITS:
            if not isinstance(value, int):
                raise ValueError(f"'{key}' must be an integer")
            values[key] = value
        else:
            values[key] = float(value)

    return UsageLimits(**values)


def load_knowledge_base(path: Optional[str] = None) -> KnowledgeBase:
    """Load and validate a knowledge base from a YAML file.

    Expected layout::

        owner: Jane Doe
        default: Hi! Ask me about ...
        categories:
          - name: experience
            keywords: [experience, work]
            answer: ...

    Category order in the file is the matching priority.

    Args:
        path: Path to YAML file, or None for the built-in knowledge base

    Returns:
        Validated KnowledgeBase

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the knowledge base is invalid
    """
    if path is None:
        return DEFAULT_KNOWLEDGE_BASE

    raw = _read_yaml(path, "Knowledge base")

    allowed_keys = {'owner', 'default', 'categories'}
    unknown_keys = set(raw.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown knowledge base keys: {unknown_keys}")

    for key in ('owner', 'default', 'categories'):
        if key not in raw:
            raise ValueError(f"Missing required '{key}' section")

    if not isinstance(raw['owner'], str):
        raise ValueError("'owner' must be a string")
    if not isinstance(raw['default'], str):
        raise ValueError("'default' must be a string")

    categories_data = raw['categories']
    if not isinstance(categories_data, list):
        raise ValueError("'categories' must be a list")

    categories = [
        _parse_category(data, f"categories[{index}]")
        for index, data in enumerate(categories_data)
    ]

    return KnowledgeBase(
        owner=raw['owner'].strip(),
        categories=tuple(categories),
        default_answer=raw['default'].strip(),
    )


def _parse_category(data: Dict, path: str) -> Category:
    """Parse and validate one knowledge base category.

    Args:
        data: Category data
        path: Path for error messages

    Returns:
        Validated Category

    Raises:
        ValueError: If the category is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"{path} must be a dictionary")

    allowed_keys = {'name', 'keywords', 'answer'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    for key in allowed_keys:
        if key not in data:
            raise ValueError(f"Missing required '{key}' in {path}")

    keywords: List[str] = data['keywords']
    if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
        raise ValueError(f"'keywords' in {path} must be a list of strings")
    if not isinstance(data['name'], str) or not isinstance(data['answer'], str):
        raise ValueError(f"'name' and 'answer' in {path} must be strings")

    return Category(
        name=data['name'].strip(),
        keywords=tuple(k.strip().lower() for k in keywords),
        answer=data['answer'].strip(),
    )
