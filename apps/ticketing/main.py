from __future__ import annotations

import logging
from dataclasses import dataclass

from opentelemetry.sdk.trace import TracerProvider
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from apps.ticketing.core.config import Settings, get_settings
from apps.ticketing.core.logging import configure_logging, init_tracer, shutdown_tracer
from apps.ticketing.tickets.codes import CodeGenerator
from apps.ticketing.tickets.notifier import LoggingNotifier
from apps.ticketing.tickets.qr import CodeImageEncoder
from apps.ticketing.tickets.repository import SqlEventResolver, SqlTicketRepository
from apps.ticketing.tickets.service import TicketService
from apps.ticketing.tickets.store import Notifier
from apps.ticketing.tickets.transfer import TicketTransferService


def _to_asyncpg_dsn(dsn: str) -> str:
    """Ensure the SQLAlchemy DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    return dsn


@dataclass(slots=True)
class TicketingContext:
    """Wired ticketing services plus the resources backing them."""

    settings: Settings
    logger: logging.Logger
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    repository: SqlTicketRepository
    tickets: TicketService
    transfers: TicketTransferService
    encoder: CodeImageEncoder
    tracer_provider: TracerProvider | None = None

    async def close(self) -> None:
        await self.engine.dispose()
        shutdown_tracer(self.tracer_provider)


async def create_ticketing(
    settings: Settings | None = None,
    *,
    notifier: Notifier | None = None,
    ensure_schema: bool = True,
) -> TicketingContext:
    settings = settings or get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    engine = create_async_engine(_to_asyncpg_dsn(settings.database_dsn), future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    repository = SqlTicketRepository(session_factory, engine=engine)
    try:
        if ensure_schema:
            await repository.ensure_schema()
    except Exception:
        await engine.dispose()
        shutdown_tracer(tracer_provider)
        raise

    generator = CodeGenerator(repository, max_attempts=settings.code_generation_max_attempts)
    context = TicketingContext(
        settings=settings,
        logger=logger,
        engine=engine,
        session_factory=session_factory,
        repository=repository,
        tickets=TicketService(repository, code_generator=generator),
        transfers=TicketTransferService(
            repository,
            SqlEventResolver(session_factory),
            notifier or LoggingNotifier(),
            code_generator=generator,
            cutoff=settings.transfer_cutoff,
        ),
        encoder=CodeImageEncoder(
            box_size=settings.qr_box_size,
            border=settings.qr_border,
            error_correction=settings.qr_error_correction,
        ),
        tracer_provider=tracer_provider,
    )
    logger.info("Ticketing core ready (%s)", settings.environment)
    return context
