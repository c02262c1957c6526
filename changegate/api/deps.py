from functools import lru_cache
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from changegate.common.config import load_rule_catalog
from changegate.core.approval import ApprovalWorkflowService, ExecutionDispatcher
from changegate.core.config import get_settings
from changegate.core.rules import RuleCatalog, RuleMatcher, default_catalog
from changegate.db.session import SessionLocal
from changegate.services.diff import DiffService
from changegate.services.notifications import NotificationService, Notifier
from changegate.services.users import UserDirectory
from changegate.stores import default_stores


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_rule_catalog() -> RuleCatalog:
    """Rule catalog from the configured rules file, or the built-in rules."""
    settings = get_settings()
    if settings.rules_file:
        return load_rule_catalog(settings.rules_file)
    return default_catalog()


def get_notifier() -> Notifier:
    return NotificationService(get_settings())


def get_user_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)


def get_workflow_service(
    db: Session = Depends(get_db),
    catalog: RuleCatalog = Depends(get_rule_catalog),
    notifier: Notifier = Depends(get_notifier),
    users: UserDirectory = Depends(get_user_directory),
) -> ApprovalWorkflowService:
    """Workflow service bound to the request's session."""
    return ApprovalWorkflowService(
        db,
        RuleMatcher(catalog),
        ExecutionDispatcher(default_stores(db)),
        notifier=notifier,
        users=users,
    )


def get_diff_service(
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
) -> DiffService:
    return DiffService(workflow.dispatcher)
