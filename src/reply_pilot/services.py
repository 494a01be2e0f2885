"""Service wiring shared by the CLI and the web application."""

from __future__ import annotations

from collections.abc import Callable

from reply_pilot.core import AppSettings, ConfigurationError, ServiceContainer
from reply_pilot.core.datetime_utils import resolve_timezone
from reply_pilot.core.interfaces import CompletionClient, MailTransport, SecretStore
from reply_pilot.ingestion import MailParser
from reply_pilot.intelligence import CompletionParameters, OpenAIChatClient, ReplyComposer
from reply_pilot.outbound import MailSender
from reply_pilot.pipeline import LocalWorkflowExecutor, PipelineStages, TriggerHandler
from reply_pilot.routing import AppConfig, config_source_from_location, load_app_config
from reply_pilot.scheduling import SystemRandomSource
from reply_pilot.storage import (
    EnvironmentSecretStore,
    FileSecretStore,
    FileSystemObjectStore,
    SecretApiKeyProvider,
)
from reply_pilot.transport import SmtpMailTransport

SETTINGS = "settings"
OBJECT_STORE = "object_store"
SECRET_STORE = "secret_store"
CONFIG_LOADER = "config_loader"
COMPLETION_CLIENT = "completion_client"
MAIL_TRANSPORT = "mail_transport"
RANDOM_SOURCE = "random_source"
STAGES = "stages"
EXECUTOR = "executor"
TRIGGER = "trigger"


def _secret_store(settings: AppSettings) -> SecretStore:
    if settings.storage.secrets_dir is not None:
        return FileSecretStore(settings.storage.secrets_dir)
    return EnvironmentSecretStore()


def _config_loader(container: ServiceContainer) -> Callable[[], AppConfig]:
    settings: AppSettings = container.resolve(SETTINGS)
    store = container.resolve(OBJECT_STORE)

    def load() -> AppConfig:
        location = settings.runtime.config_location
        if not location:
            raise ConfigurationError("Persona configuration location is not set")
        return load_app_config(config_source_from_location(location, store))

    return load


def _completion_client(container: ServiceContainer) -> CompletionClient:
    settings: AppSettings = container.resolve(SETTINGS)
    return OpenAIChatClient(
        settings.completion,
        api_key=SecretApiKeyProvider(
            container.resolve(SECRET_STORE), settings.runtime.secret_name
        ),
    )


def _stages(container: ServiceContainer) -> PipelineStages:
    settings: AppSettings = container.resolve(SETTINGS)
    config_loader = container.resolve(CONFIG_LOADER)
    transport: MailTransport = container.resolve(MAIL_TRANSPORT)
    return PipelineStages(
        config_loader=config_loader,
        parser=MailParser(),
        composer=ReplyComposer(
            container.resolve(COMPLETION_CLIENT),
            defaults=CompletionParameters(model=settings.completion.default_model),
        ),
        sender=MailSender(
            transport,
            config_loader,
            zone=resolve_timezone(settings.reply.timezone),
        ),
        random_source=container.resolve(RANDOM_SOURCE),
    )


def _executor(container: ServiceContainer) -> LocalWorkflowExecutor:
    settings: AppSettings = container.resolve(SETTINGS)
    return LocalWorkflowExecutor(
        container.resolve(STAGES),
        timeout_seconds=settings.executor.timeout_seconds,
        max_finished=settings.executor.max_finished,
    )


def _trigger(container: ServiceContainer) -> TriggerHandler:
    settings: AppSettings = container.resolve(SETTINGS)
    return TriggerHandler(
        settings.runtime,
        container.resolve(OBJECT_STORE),
        container.resolve(STAGES),
        container.resolve(EXECUTOR),
    )


def build_container(settings: AppSettings) -> ServiceContainer:
    """Register every pipeline collaborator for ``settings``.

    Tests and the dry-run CLI swap individual services with
    :meth:`ServiceContainer.provide` before anything is resolved.
    """
    container = ServiceContainer()
    container.provide(SETTINGS, settings)
    container.register(
        OBJECT_STORE, lambda c: FileSystemObjectStore(settings.storage.root)
    )
    container.register(SECRET_STORE, lambda c: _secret_store(settings))
    container.register(CONFIG_LOADER, _config_loader)
    container.register(COMPLETION_CLIENT, _completion_client)
    container.register(MAIL_TRANSPORT, lambda c: SmtpMailTransport(settings.smtp))
    container.register(RANDOM_SOURCE, lambda c: SystemRandomSource())
    container.register(STAGES, _stages)
    container.register(EXECUTOR, _executor)
    container.register(TRIGGER, _trigger)
    return container


__all__ = [
    "COMPLETION_CLIENT",
    "CONFIG_LOADER",
    "EXECUTOR",
    "MAIL_TRANSPORT",
    "OBJECT_STORE",
    "RANDOM_SOURCE",
    "SECRET_STORE",
    "SETTINGS",
    "STAGES",
    "TRIGGER",
    "build_container",
]
