"""EntityCatalog - the live list of selectable classes.

One listener on the top-level collection. Each upstream change is turned into
the full current entity list; callers never see diffs. A broken or unopenable
listener settles the catalog into an empty list with an explicit error status
instead of leaving callers waiting.
"""

from collections.abc import Callable

from src.routine_sync.errors import CatalogSubscribeError
from src.routine_sync.logging import get_logger
from src.routine_sync.models import CatalogStatus, Entity, SourceDocument
from src.routine_sync.sources import ScheduleSource, Unsubscribe, open_listener

log = get_logger(__name__)


def _noop() -> None:
    pass


def entity_from_document(doc: SourceDocument) -> Entity:
    name = doc.fields.get("name")
    return Entity(id=doc.id, name=name if isinstance(name, str) else "")


class EntityCatalog:
    """Live catalog of schedulable entities."""

    def __init__(
        self,
        source: ScheduleSource,
        collection: str = "routines",
        *,
        subscribe_attempts: int = 3,
        subscribe_retry_wait_seconds: float = 0.5,
    ) -> None:
        self.source = source
        self.collection = collection
        self.subscribe_attempts = subscribe_attempts
        self.subscribe_retry_wait_seconds = subscribe_retry_wait_seconds

        self.entities: list[Entity] = []
        self.status = CatalogStatus.LOADING
        self.error: CatalogSubscribeError | None = None

    def subscribe(
        self,
        on_update: Callable[[list[Entity]], None],
        on_error: Callable[[CatalogSubscribeError], None] | None = None,
    ) -> Unsubscribe:
        """Start listening to the entity collection.

        Args:
            on_update: Receives the full entity list on every change, and an
                empty list when the listener fails.
            on_error: Receives the CatalogSubscribeError describing the failure.

        Returns:
            Callable that detaches the listener. Safe to call more than once.
        """

        def handle_change(docs: list[SourceDocument]) -> None:
            entities = [entity_from_document(doc) for doc in docs]
            self.entities = entities
            self.status = CatalogStatus.READY
            self.error = None
            log.debug("catalog_updated", collection=self.collection, entities=len(entities))
            on_update(list(entities))

        def handle_error(exc: Exception) -> None:
            error = (
                exc
                if isinstance(exc, CatalogSubscribeError)
                else CatalogSubscribeError(f"Catalog listener failed: {exc}")
            )
            if error is not exc:
                error.__cause__ = exc
            self.entities = []
            self.status = CatalogStatus.ERROR
            self.error = error
            log.warning(
                "catalog_subscription_failed",
                collection=self.collection,
                error=str(exc),
                type=type(exc).__name__,
            )
            if on_error is not None:
                on_error(error)
            on_update([])

        self.status = CatalogStatus.LOADING
        try:
            unsubscribe = open_listener(
                lambda: self.source.subscribe_collection(
                    self.collection, handle_change, handle_error
                ),
                attempts=self.subscribe_attempts,
                wait_seconds=self.subscribe_retry_wait_seconds,
            )
        except Exception as e:
            handle_error(e)
            return _noop

        log.info("catalog_subscribed", collection=self.collection)
        return unsubscribe
