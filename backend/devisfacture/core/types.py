"""Types de colonnes partagés par les modèles SQLModel."""
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from devisfacture.core.utils import as_utc


class UTCDateTime(TypeDecorator):
    """`DateTime(timezone=True)` qui écrit et relit toujours des datetimes UTC avec fuseau.

    SQLite ne conserve pas le fuseau : les valeurs relues sans fuseau sont en UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)
