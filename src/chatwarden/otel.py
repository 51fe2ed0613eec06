"""OpenTelemetry tracing for command dispatch."""

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode, TracerProvider

from chatwarden.commands.middleware import CommandEnvelope, Dispatch, Middleware


def tracing(tracer_provider: TracerProvider | None = None) -> Middleware:
    """Middleware that wraps each command dispatch in a consumer span.

    Example:
        processor = CommandQueueProcessor(store, middlewares=[tracing()])
    """
    provider = tracer_provider or trace.get_tracer_provider()
    tracer = provider.get_tracer("chatwarden.otel")

    def middleware(next_dispatch: Dispatch) -> Dispatch:
        async def dispatch(envelope: CommandEnvelope) -> None:
            attributes = {
                "messaging.system": "chatwarden",
                "messaging.operation.type": "process",
                "messaging.destination.name": "admin_commands",
                "messaging.message.id": envelope.key,
                "chatwarden.command": envelope.kind.value,
                "chatwarden.actor": envelope.actor_id,
            }
            with tracer.start_as_current_span(
                f"process {envelope.kind.value}",
                kind=SpanKind.CONSUMER,
                attributes=attributes,
            ) as span:
                try:
                    await next_dispatch(envelope)
                    span.set_status(Status(StatusCode.OK))
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.set_attribute("error.type", type(e).__name__)
                    raise

        return dispatch

    return middleware
