from __future__ import annotations

import structlog
from dependency_injector import containers, providers

from core.settings import SETTINGS
from infra.resources import CompletionResource, DatabaseResource


logger = structlog.get_logger("chat")


class InfrastructureContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    settings = providers.Object(SETTINGS)
    logger = providers.Object(logger)

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
    )

    # Completion API client, one per process
    completion = providers.Resource(
        CompletionResource,
        api_key=SETTINGS.COMPLETION.OPENAI_API_KEY.get_secret_value(),
        base_url=SETTINGS.COMPLETION.COMPLETION_BASE_URL,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    completion_client = providers.Singleton(
        "api.features.conversation.completion.CompletionClient",
        resource=infrastructure.completion,
        model=SETTINGS.COMPLETION.COMPLETION_MODEL,
        temperature=SETTINGS.COMPLETION.COMPLETION_TEMPERATURE,
        max_tokens=SETTINGS.COMPLETION.COMPLETION_MAX_TOKENS,
        system_prompt=SETTINGS.COMPLETION.SYSTEM_PROMPT,
    )

    # Singleton: the per-session lock map must be shared by all requests
    conversation_manager = providers.Singleton(
        "api.features.conversation.service.ConversationManager",
        completion_client=completion_client,
        default_title=SETTINGS.CONVERSATION.DEFAULT_TITLE,
        title_max_length=SETTINGS.CONVERSATION.TITLE_MAX_LENGTH,
        completion_timeout=SETTINGS.COMPLETION.COMPLETION_TIMEOUT_SECONDS,
        list_limit=SETTINGS.CONVERSATION.LIST_LIMIT,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    conversation_controller = providers.Factory(
        "api.features.conversation.controller.ConversationController",
        conversation_manager=services.conversation_manager,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.shared.db",
            "api.features.conversation.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
