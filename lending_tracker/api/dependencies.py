"""
Lending system wiring and the FastAPI dependency that provides it
"""

from typing import Optional

from ..config import LendingConfig, get_config
from ..storage import InMemoryStorage, SQLiteStorage
from ..audit import AuditTrail
from ..loans import LoanManager
from ..notifications import NotificationService, create_provider


class LendingSystem:
    """Lending tracker with all components initialized"""

    def __init__(self, use_sqlite: bool = True, settings: Optional[LendingConfig] = None):
        self.config = settings or get_config()

        if use_sqlite:
            self.storage = SQLiteStorage(self.config.database_path)
        else:
            self.storage = InMemoryStorage()

        self.audit_trail = AuditTrail(self.storage)
        self.loan_manager = LoanManager(self.storage, self.audit_trail)

        self.notification_service: Optional[NotificationService] = None
        if self.config.notifications_enabled:
            self.notification_service = NotificationService(
                self.storage,
                create_provider(self.config),
                self.audit_trail,
                currency_symbol=self.config.currency_symbol,
                display_precision=self.config.display_precision
            )

    def close(self) -> None:
        self.storage.close()


# Created on first request so importing the app never touches the database
lending_system: Optional[LendingSystem] = None


def get_lending_system() -> LendingSystem:
    global lending_system
    if lending_system is None:
        settings = get_config()
        lending_system = LendingSystem(use_sqlite=settings.storage_backend == "sqlite")
    return lending_system
