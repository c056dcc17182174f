"""
Static knowledge base of canned resume answers.

Categories are evaluated in declared order; the first category whose keyword
appears in the question wins. Questions matching nothing get the default
answer.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

DEFAULT_CATEGORY = "default"


@dataclass(frozen=True)
class Category:
    """A topic with its trigger keywords and canned answer."""
    name: str
    keywords: Tuple[str, ...]
    answer: str

    def __post_init__(self):
        """Validate category contents."""
        if not self.name or not self.name.strip():
            raise ValueError("category name must not be empty")
        if self.name == DEFAULT_CATEGORY:
            raise ValueError(f"'{DEFAULT_CATEGORY}' is reserved for the no-match answer")
        if not self.keywords:
            raise ValueError(f"category '{self.name}' needs at least one keyword")
        if any(not k or k != k.lower() for k in self.keywords):
            raise ValueError(f"keywords of '{self.name}' must be non-empty and lowercase")
        if not self.answer or not self.answer.strip():
            raise ValueError(f"category '{self.name}' has an empty answer")

    def matches(self, normalized_question: str) -> bool:
        """Substring match against an already case-folded question."""
        return any(keyword in normalized_question for keyword in self.keywords)


@dataclass(frozen=True)
class KnowledgeBase:
    """Immutable map from keyword sets to canned answers."""
    owner: str
    categories: Tuple[Category, ...]
    default_answer: str

    def __post_init__(self):
        """Validate the knowledge base as a whole."""
        if not self.owner or not self.owner.strip():
            raise ValueError("owner must not be empty")
        if not self.default_answer or not self.default_answer.strip():
            raise ValueError("default answer must not be empty")
        names = [c.name for c in self.categories]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate categories: {sorted(duplicates)}")

    def rules(self) -> List[Tuple[Callable[[str], bool], str]]:
        """Ordered (predicate, category) pairs, highest priority first."""
        return [(category.matches, category.name) for category in self.categories]

    def classify(self, question: str) -> str:
        """Return the name of the first matching category, or the default."""
        normalized = question.casefold()
        for predicate, name in self.rules():
            if predicate(normalized):
                return name
        return DEFAULT_CATEGORY

    def answer_for(self, category: str) -> str:
        """Get the canned answer for a category name.

        Raises:
            KeyError: If the category is unknown
        """
        if category == DEFAULT_CATEGORY:
            return self.default_answer
        found = self._find(category)
        if found is None:
            raise KeyError(category)
        return found.answer

    def select_answer(self, question: str) -> str:
        return self.answer_for(self.classify(question))

    def topics(self) -> List[str]:
        return [c.name for c in self.categories]

    def as_context(self) -> str:
        """Render every answer as plain text for the upstream system prompt."""
        sections = [f"{c.name.upper()}:\n{c.answer}" for c in self.categories]
        return "\n\n".join(sections)

    def _find(self, name: str) -> Optional[Category]:
        for category in self.categories:
            if category.name == name:
                return category
        return None


DEFAULT_KNOWLEDGE_BASE = KnowledgeBase(
    owner="Lance Hebert",
    categories=(
        Category(
            name="experience",
            keywords=("experience", "work"),
            answer=(
                "Lance Hebert has professional experience as a Software Engineer with 3+ years "
                "of JavaScript and Ruby on Rails. At VOGLIO Marketing he built high-performance "
                "web applications, raised client Lighthouse scores from 45% to 90+%, delivered "
                "WCAG 2.1 AA compliant sites and mentored other developers."
            ),
        ),
        Category(
            name="skills",
            keywords=("skills", "technologies"),
            answer=(
                "Lance Hebert has expertise in:\n\n"
                "- Languages: JavaScript, Ruby\n"
                "- Frameworks: Ruby on Rails, React, HTML5, CSS3\n"
                "- CMS: Contentful (headless CMS)\n"
                "- Performance and accessibility: Lighthouse, WCAG 2.1 AA\n"
                "- Tools: Git, Foundation CSS, Bootstrap"
            ),
        ),
        Category(
            name="projects",
            keywords=("projects", "portfolio"),
            answer=(
                "Lance Hebert has built several projects:\n\n"
                "1. Ad Skipping Browser Extension for YouTube, a Chrome extension with 607 "
                "impressions and 23 active users\n"
                "2. Physical Therapy Exercise Injury Prevention App, a full-stack app built "
                "with PostgreSQL and React"
            ),
        ),
        Category(
            name="contact",
            keywords=("contact", "email", "reach"),
            answer=(
                "You can connect with Lance through:\n\n"
                "- Email: LSUHEBERT@gmail.com\n"
                "- LinkedIn: linkedin.com/in/Lance-Hebert\n"
                "- GitHub: github.com/lancehebert\n"
                "- Website: www.lance-hebert.com"
            ),
        ),
    ),
    default_answer=(
        "Hi! I'm ChadGPT, Lance's resume assistant. You can ask me about:\n\n"
        "- Experience & work history\n"
        "- Technical skills & technologies\n"
        "- Projects & portfolio\n"
        "- Contact information\n\n"
        "What would you like to know about Lance?"
    ),
)
