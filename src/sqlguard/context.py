"""Per-request context passed down through the orchestrators."""

from sqlguard.database.schema import SchemaProvider


class RequestContext:
    """
    Values scoped to a single request.

    The schema text is fetched at most once per request and never shared
    with other requests.
    """

    def __init__(self, schema_provider: SchemaProvider) -> None:
        self.schema_provider = schema_provider
        self._schema: str | None = None

    @property
    def schema(self) -> str:
        if self._schema is None:
            self._schema = self.schema_provider.get_schema()
        return self._schema
