import logging
from typing import Any, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hr_evidence.core.exceptions import PersistenceError, ResourceNotFoundError

T = TypeVar("T")


class BaseService:
    """
    Common plumbing for domain services: the request-scoped session,
    a per-service logger and an explicit commit/rollback helper.
    """

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(self.__class__.__module__)

    def log_info(self, message: str, **extra: Any):
        self._logger.info(message, extra=extra or None)

    def log_error(self, message: str, **extra: Any):
        self._logger.error(message, extra=extra or None, exc_info=True)

    def get_or_404(self, model: Any, object_id: Any, resource: str = None):
        obj = self.db.get(model, object_id)
        if obj is None:
            raise ResourceNotFoundError(resource or model.__name__, object_id)
        return obj

    def run_in_transaction(self, work: Callable[[], T], action: str) -> T:
        """
        Executes `work` and commits once. Any database failure rolls the whole
        unit back and surfaces as PersistenceError.
        """
        try:
            result = work()
            self.db.commit()
            return result
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.log_error(f"{action} failed; transaction rolled back: {exc}")
            raise PersistenceError(f"{action} failed: database error") from exc
