"""
Department classification.

Maps a posting's raw department / title / description to a canonical
department using each department's name and keyword list. Department
tables are read through a DepartmentCache that is loaded once and
invalidated whenever keywords change.
"""
import logging
from typing import Callable, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.department import Department
from app.schemas.department import DepartmentEntry

logger = logging.getLogger(__name__)


# Default taxonomy seeded into an empty departments table
DEFAULT_DEPARTMENTS = [
    {
        "name": "Engineering",
        "keywords": [
            "software development", "software engineer", "hardware engineering",
            "it infrastructure", "cybersecurity", "devops", "sre", "security",
            "developer", "frontend", "backend", "fullstack", "full stack",
            "web developer", "mobile developer", "ios", "android", "qa",
            "quality assurance", "test engineer", "infrastructure", "cloud",
            "aws", "azure", "gcp", "site reliability", "systems", "network",
            "platform",
        ],
    },
    {
        "name": "Data",
        "keywords": [
            "data engineer", "data scientist", "data analyst", "business intelligence",
            "bi", "analytics", "machine learning", "ml", "ai", "artificial intelligence",
            "data science", "data architecture", "etl", "data warehouse", "data modeling",
        ],
    },
    {
        "name": "Design",
        "keywords": [
            "user research", "ux", "ui", "product design", "interaction design",
            "motion design", "brand design", "graphic design", "visual design",
            "user experience", "user interface", "ux/ui", "ui/ux", "creative", "designer",
        ],
    },
    {
        "name": "Sales",
        "keywords": [
            "revenue generation", "business development", "partnerships", "b2b sales",
            "b2c sales", "account executive", "sales representative", "sales manager",
            "sales director", "sales operations", "sales enablement", "inside sales",
            "outside sales", "enterprise sales", "solution sales", "technical sales",
        ],
    },
    {
        "name": "Marketing",
        "keywords": [
            "brand strategy", "content marketing", "performance marketing", "pr",
            "public relations", "product marketing", "gtm", "go to market",
            "demand generation", "growth", "seo", "sem", "social media",
            "digital marketing", "email marketing", "events", "communications",
            "brand", "marketing operations",
        ],
    },
    {
        "name": "Customer Success",
        "keywords": [
            "client retention", "onboarding", "technical support", "user engagement",
            "customer experience", "product support", "solutions", "customer service",
            "customer support", "account management", "client success", "client services",
            "implementation", "customer advocacy", "customer happiness",
        ],
    },
    {
        "name": "Operations",
        "keywords": [
            "strategy", "operations associate", "business operations", "business analyst",
            "mergers & acquisitions", "market research", "strategic planning",
            "program management", "project management", "product operations",
            "process improvement", "business systems", "operations manager",
        ],
    },
    {
        "name": "People",
        "keywords": [
            "talent acquisition", "benefits", "employee experience", "dei", "diversity",
            "equity", "inclusion", "recruiting", "learning and development", "hr",
            "human resources", "people operations", "talent", "culture",
            "organizational development", "compensation", "people analytics",
        ],
    },
    {
        "name": "Finance & Accounting",
        "keywords": [
            "financial planning", "budgeting", "audits", "payroll", "tax",
            "investor relations", "accounting", "controller", "treasury",
            "financial analysis", "fp&a", "finance", "accounts payable",
            "accounts receivable", "revenue operations",
        ],
    },
    {
        "name": "Legal & Compliance",
        "keywords": [
            "regulatory affairs", "contracts", "intellectual property", "governance",
            "general counsel", "legal", "compliance", "privacy", "data protection",
            "corporate counsel", "patent", "trademark", "licensing", "ethics",
        ],
    },
]


class DepartmentClassifier:
    """
    Classify postings against a fixed, ordered list of departments.

    Signals are tried in priority order: raw department, title, description.
    For each signal, departments are scanned in table order; a department
    matches on its name or on any of its keywords, and the first match wins.
    All comparisons are case-insensitive.
    """

    def __init__(self, departments: Iterable[DepartmentEntry]):
        # Pre-lowercased (id, name, keywords) in table order
        self._departments = [
            (d.id, d.name.lower(), [k.lower() for k in d.keywords if k])
            for d in departments
        ]

    def __len__(self) -> int:
        return len(self._departments)

    def classify(
        self,
        title: Optional[str],
        description: Optional[str],
        raw_department: Optional[str]
    ) -> Optional[int]:
        """
        Returns:
            Matching department id, or None when nothing matches
        """
        if not self._departments:
            return None

        raw = (raw_department or "").strip().lower()
        if raw:
            match = self._first(raw, lambda name: raw == name)
            if match is not None:
                return match

        for signal in ((title or "").lower(), (description or "").lower()):
            if not signal:
                continue
            match = self._first(signal, lambda name: name in signal)
            if match is not None:
                return match

        return None

    def _first(self, text: str, name_matches: Callable[[str], bool]) -> Optional[int]:
        for department_id, name, keywords in self._departments:
            if name_matches(name) or any(keyword in text for keyword in keywords):
                return department_id
        return None


class DepartmentCache:
    """
    Process-wide department tables.

    Loaded lazily on first use; call invalidate() after any keyword change
    so the next load sees it.
    """

    def __init__(self):
        self._departments: Optional[List[DepartmentEntry]] = None

    @property
    def loaded(self) -> bool:
        return self._departments is not None

    async def get_departments(self, db: AsyncSession) -> List[DepartmentEntry]:
        if self._departments is None:
            self._departments = await list_departments(db)
            logger.info(f"Loaded {len(self._departments)} departments into cache")
        return self._departments

    async def get_classifier(self, db: AsyncSession) -> DepartmentClassifier:
        departments = await self.get_departments(db)
        if not departments:
            logger.warning("No departments found for matching")
        return DepartmentClassifier(departments)

    def invalidate(self) -> None:
        self._departments = None
        logger.debug("Department cache invalidated")


async def list_departments(db: AsyncSession) -> List[DepartmentEntry]:
    """All departments in insertion order, detached from the session."""
    result = await db.execute(select(Department).order_by(Department.id))
    return [DepartmentEntry.model_validate(d) for d in result.scalars().all()]


async def update_department_keywords(
    db: AsyncSession,
    cache: DepartmentCache,
    department_id: int,
    keywords: List[str]
) -> Department:
    """
    Replace a department's keywords and invalidate the cache.

    Raises:
        ValueError: If the department does not exist
    """
    result = await db.execute(select(Department).where(Department.id == department_id))
    department = result.scalar_one_or_none()

    if not department:
        raise ValueError(f"Department {department_id} not found")

    department.keywords = _dedupe(keywords)
    await db.commit()
    await db.refresh(department)

    cache.invalidate()
    logger.info(f"Updated keywords for department {department.name} ({len(department.keywords)} keywords)")
    return department


async def add_department_keywords(
    db: AsyncSession,
    cache: DepartmentCache,
    department_id: int,
    new_keywords: List[str]
) -> Department:
    """Add keywords to a department, keeping existing ones and their order."""
    result = await db.execute(select(Department).where(Department.id == department_id))
    department = result.scalar_one_or_none()

    if not department:
        raise ValueError(f"Department {department_id} not found")

    combined = list(department.keywords or []) + list(new_keywords)
    return await update_department_keywords(db, cache, department_id, combined)


async def seed_departments(db: AsyncSession) -> int:
    """
    Insert the default departments that don't exist yet.
    Returns the number of departments created.
    """
    result = await db.execute(select(Department.name))
    existing = set(result.scalars().all())

    created = 0
    for data in DEFAULT_DEPARTMENTS:
        if data["name"] in existing:
            logger.info(f"Department already exists: {data['name']}")
            continue
        db.add(Department(name=data["name"], keywords=list(data["keywords"])))
        created += 1
        logger.info(f"Seeded department: {data['name']}")

    await db.commit()
    return created


def _dedupe(keywords: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for keyword in keywords:
        cleaned = (keyword or "").strip()
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            out.append(cleaned)
    return out
