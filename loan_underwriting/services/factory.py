"""Wire the underwriting service to its production adapters"""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from loan_underwriting.config import Settings, settings as default_settings
from loan_underwriting.infrastructure.clients.customers import CustomerClient
from loan_underwriting.infrastructure.clients.documents import DocumentClient
from loan_underwriting.infrastructure.clients.notifications import WebhookNotifier
from loan_underwriting.infrastructure.database.repositories import SqlApplicationRepository
from loan_underwriting.infrastructure.database.session import (
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from loan_underwriting.infrastructure.observability.logging import setup_logging
from loan_underwriting.infrastructure.policy_loader import resolve_policy
from loan_underwriting.services.underwriting import UnderwritingService


def build_service(config: Optional[Settings] = None, create_tables: bool = True) -> UnderwritingService:
    config = config or default_settings
    setup_logging(config.log_level)

    engine = create_engine_from_settings(config.database_url)
    if create_tables:
        init_db(engine)

    return UnderwritingService(
        repository=SqlApplicationRepository(create_session_factory(engine)),
        customers=CustomerClient(config.customer_api_base, config.http_timeout_seconds),
        documents=DocumentClient(config.document_api_base, config.http_timeout_seconds),
        notifier=WebhookNotifier(
            config.notification_webhook_url,
            max_retries=config.webhook_max_retries,
            backoff_base=config.webhook_backoff_base,
        ),
        policy=resolve_policy(config.policy_file),
        auto_approval_enabled=config.auto_approval_enabled,
        notification_executor=ThreadPoolExecutor(
            max_workers=config.notification_workers, thread_name_prefix="loan-notify"
        ),
    )
