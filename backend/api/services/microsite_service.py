"""Microsite service - CRUD, publishing and scan tracking for microsites.

Provides async operations for microsites using SQLAlchemy. Ownership is
enforced by passing ``user_id``; admins pass ``None`` to act on any
microsite.
"""

import logging
import secrets
import time
import uuid
from datetime import UTC, datetime

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from api.models import Microsite, MicrositeCard, MicrositeContent, MicrositeScan, User
from api.models.microsite import DEFAULT_THEME, STATUS_DRAFT, STATUS_PUBLISHED

logger = logging.getLogger(__name__)

PAGE_SIZE = 20
SORT_FIELDS = {
    "name": func.lower(Microsite.name),
    "created_at": Microsite.created_at,
    "scan_count": Microsite.scan_count,
    "status": Microsite.status,
}


class PublishError(ValueError):
    """Microsite cannot be published in its current state."""

    pass


class SlugTakenError(ValueError):
    """Another microsite already uses the requested URL."""

    pass


def generate_slug() -> str:
    """Random public slug, e.g. ``microsite-V1StGXR8``."""
    return f"microsite-{secrets.token_urlsafe(6)}"


def default_name() -> str:
    return f"New Microsite {int(time.time() * 1000)}"


class MicrositeService:
    """Service for managing microsites."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    async def create(self, user_id: uuid.UUID, name: str | None = None) -> Microsite:
        """Create a draft microsite with its default content row.

        Args:
            user_id: Owner's user ID
            name: Optional display name (default: ``New Microsite <ms timestamp>``)

        Returns:
            The created Microsite
        """
        microsite = Microsite(
            user_id=user_id,
            name=name or default_name(),
            url=generate_slug(),
            status=STATUS_DRAFT,
            scan_count=0,
        )
        self.db.add(microsite)
        await self.db.flush()

        self.db.add(
            MicrositeContent(
                microsite_id=microsite.id,
                title=None,
                header_image_url=None,
                theme_config=dict(DEFAULT_THEME),
            )
        )
        await self.db.flush()
        await self.db.refresh(microsite)
        logger.info(f"Created microsite {microsite.id} ({microsite.url}) for user {user_id}")
        return microsite

    async def get_by_id(
        self,
        microsite_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
    ) -> Microsite | None:
        """Get a microsite by ID.

        Args:
            microsite_id: The microsite UUID
            user_id: If provided, only return if owned by this user

        Returns:
            The Microsite if found, None otherwise
        """
        query = select(Microsite).where(Microsite.id == microsite_id)
        if user_id is not None:
            query = query.where(Microsite.user_id == user_id)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _list_query(
        self,
        user_id: uuid.UUID | None,
        search: str | None,
        status_filter: str,
    ) -> Select:
        query = select(Microsite).join(Microsite.user)
        if user_id is not None:
            query = query.where(Microsite.user_id == user_id)
        if status_filter != "all":
            query = query.where(Microsite.status == status_filter)
        if search:
            pattern = f"%{search.strip()}%"
            full_name = func.concat(User.first_name, " ", User.last_name)
            query = query.where(
                or_(
                    Microsite.name.ilike(pattern),
                    User.email.ilike(pattern),
                    full_name.ilike(pattern),
                )
            )
        return query

    async def list_with_owners(
        self,
        user_id: uuid.UUID | None = None,
        search: str | None = None,
        status_filter: str = "all",
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = PAGE_SIZE,
    ) -> tuple[list[Microsite], int]:
        """List microsites with owner details.

        Args:
            user_id: Restrict to this owner; None lists every microsite (admin)
            search: Case-insensitive match on name, owner email or owner full name
            status_filter: ``all``, ``draft`` or ``published``
            sort_by: ``name``, ``created_at``, ``scan_count`` or ``status``
            sort_order: ``asc`` or ``desc``
            page: 1-based page number
            page_size: Items per page (default: 20)

        Returns:
            Tuple of (microsites on the page with ``user`` loaded, total matches)
        """
        base = self._list_query(user_id, search, status_filter)

        count_query = select(func.count()).select_from(base.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        column = SORT_FIELDS.get(sort_by, Microsite.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        query = (
            base.options(contains_eager(Microsite.user))
            .order_by(ordering, Microsite.id)
            .limit(page_size)
            .offset((max(page, 1) - 1) * page_size)
        )
        result = await self.db.execute(query)
        return list(result.scalars().unique().all()), total

    async def update(
        self,
        microsite_id: uuid.UUID,
        user_id: uuid.UUID | None,
        name: str | None = None,
        url: str | None = None,
    ) -> Microsite | None:
        """Update name and/or public URL.

        Returns:
            The updated Microsite if found and owned, None otherwise

        Raises:
            SlugTakenError: If ``url`` belongs to another microsite
        """
        microsite = await self.get_by_id(microsite_id, user_id)
        if microsite is None:
            return None

        if url is not None and url != microsite.url:
            existing = await self.db.execute(
                select(Microsite.id).where(Microsite.url == url, Microsite.id != microsite_id)
            )
            if existing.scalar_one_or_none() is not None:
                raise SlugTakenError(f"URL '{url}' is already in use")
            microsite.url = url
        if name is not None:
            microsite.name = name

        await self.db.flush()
        await self.db.refresh(microsite)
        logger.info(f"Updated microsite {microsite_id}")
        return microsite

    async def delete(self, microsite_id: uuid.UUID, user_id: uuid.UUID | None) -> bool:
        """Delete a microsite with its content, cards and scans.

        Returns:
            True if deleted, False if not found or not owned
        """
        microsite = await self.get_by_id(microsite_id, user_id)
        if microsite is None:
            return False

        await self.db.delete(microsite)
        await self.db.flush()
        logger.info(f"Deleted microsite {microsite_id}")
        return True

    async def toggle_publish(
        self, microsite_id: uuid.UUID, user_id: uuid.UUID | None
    ) -> Microsite | None:
        """Flip between draft and published.

        Publishing requires a content title; unpublishing always succeeds.

        Raises:
            PublishError: If publishing a microsite without a title
        """
        microsite = await self.get_by_id(microsite_id, user_id)
        if microsite is None:
            return None

        if microsite.status == STATUS_PUBLISHED:
            microsite.status = STATUS_DRAFT
        else:
            result = await self.db.execute(
                select(MicrositeContent.title).where(MicrositeContent.microsite_id == microsite_id)
            )
            title = result.scalar_one_or_none()
            if not title or not title.strip():
                raise PublishError("Please add a title to your microsite before publishing.")
            microsite.status = STATUS_PUBLISHED

        await self.db.flush()
        await self.db.refresh(microsite)
        logger.info(f"Microsite {microsite_id} is now {microsite.status}")
        return microsite

    async def get_published_by_slug(self, slug: str) -> Microsite | None:
        """Load a published microsite with content, cards and buttons.

        Draft microsites are treated as missing.
        """
        query = (
            select(Microsite)
            .where(Microsite.url == slug, Microsite.status == STATUS_PUBLISHED)
            .options(
                selectinload(Microsite.content),
                selectinload(Microsite.cards).selectinload(MicrositeCard.buttons),
            )
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def track_scan(
        self,
        microsite_id: uuid.UUID,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> bool:
        """Record a visit and bump the microsite's counters.

        Failures are logged and never raised so the page still renders.

        Returns:
            True if the scan was recorded
        """
        try:
            async with self.db.begin_nested():
                self.db.add(
                    MicrositeScan(
                        microsite_id=microsite_id,
                        user_agent=user_agent,
                        ip_address=ip_address,
                    )
                )
                await self.db.execute(
                    update(Microsite)
                    .where(Microsite.id == microsite_id)
                    .values(
                        scan_count=Microsite.scan_count + 1,
                        last_scan_at=datetime.now(UTC),
                    )
                )
        except Exception:
            logger.exception(f"Error tracking scan for microsite {microsite_id}")
            return False
        return True
