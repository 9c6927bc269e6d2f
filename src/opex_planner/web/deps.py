"""FastAPI dependency injection for the web interface."""

import secrets
from typing import Generator

from fastapi import Depends, Request

from opex_planner.allocation import AllocationLedger
from opex_planner.config import Config
from opex_planner.db import Database
from opex_planner.dimensions import LIVE_FORECAST
from opex_planner.planner import NOTICE_CANCELLED, NOTICE_SUCCESS, ExpenseDataService, ExpensePlanner, Notice
from opex_planner.tagging import ProductTagger
from opex_planner.web.sessions import PlannerSession, PlannerStore

SESSION_TOKEN_KEY = "planner_token"


def get_config(request: Request) -> Config:
    """Get the application configuration from app state."""
    return request.app.state.config


def get_db(config: Config = Depends(get_config)) -> Generator[Database, None, None]:
    """Get a database connection.

    Yields a Database instance that is automatically closed after the request.
    """
    db = Database(config.database.path)
    db.initialize()
    try:
        yield db
    finally:
        db.close()


def get_service(
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
) -> ExpenseDataService:
    return ExpenseDataService(db, batch_size=config.planning.batch_size)


def get_planner_session(
    request: Request,
    config: Config = Depends(get_config),
    service: ExpenseDataService = Depends(get_service),
) -> PlannerSession:
    """Get this browser session's planner, loading it from the database on first use."""
    store: PlannerStore = request.app.state.planners
    token = request.session.get(SESSION_TOKEN_KEY)
    if not token:
        token = secrets.token_hex(16)
        request.session[SESSION_TOKEN_KEY] = token

    def create() -> PlannerSession:
        planner = ExpensePlanner(config.planning)
        notice = planner.load(service)
        if notice is not None:
            add_notice(request, notice)
        return PlannerSession(planner=planner)

    return store.get_or_create(token, create)


def get_planner(session: PlannerSession = Depends(get_planner_session)) -> ExpensePlanner:
    return session.planner


def get_tagger(
    session: PlannerSession = Depends(get_planner_session),
    config: Config = Depends(get_config),
    db: Database = Depends(get_db),
) -> ProductTagger:
    """Get the session's working product tags, read from the database on first use."""
    with session.lock:
        if session.tagger is None:
            tagger = ProductTagger(config.planning.products)
            tagger.load(db)
            session.tagger = tagger
        return session.tagger


def get_ledger(
    session: PlannerSession = Depends(get_planner_session),
    tagger: ProductTagger = Depends(get_tagger),
    db: Database = Depends(get_db),
) -> AllocationLedger:
    """Build an allocation ledger over the session's Live Forecast and working allocations.

    The ledger shares the session's allocation dict, so edits made through it
    survive between requests until saved.
    """
    planner = session.planner
    with session.lock:
        if session.allocations is None:
            session.allocations = db.get_allocations()
        ledger = AllocationLedger(
            planner.expenses_for(LIVE_FORECAST),
            tagger.tags,
            granularity=planner.time_granularity,
            year=planner.year,
        )
        ledger.allocations = session.allocations
        return ledger


def get_flash_messages(request: Request) -> list[dict]:
    """Get and clear flash messages from session."""
    messages = request.session.pop("flash_messages", [])
    return messages


def add_flash_message(request: Request, category: str, message: str) -> None:
    """Add a flash message to the session."""
    if "flash_messages" not in request.session:
        request.session["flash_messages"] = []
    request.session["flash_messages"].append({"category": category, "message": message})


def add_notice(request: Request, notice: Notice) -> None:
    """Flash a planner notice with the matching category."""
    if notice.code == NOTICE_SUCCESS:
        category = "success"
    elif notice.code == NOTICE_CANCELLED:
        category = "warning"
    else:
        category = "error"
    message = notice.message
    if notice.details:
        message = f"{message} ({notice.details})"
    add_flash_message(request, category, message)


def notice_payload(notice: Notice | None) -> dict | None:
    """Notice as a JSON-friendly dict."""
    if notice is None:
        return None
    return {"message": notice.message, "code": notice.code, "details": notice.details}
