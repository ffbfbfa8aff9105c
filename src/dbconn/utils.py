"""Low-level helpers with no internal dependencies.

These utilities work with SQLAlchemy connections, engines and URLs and have
no imports from other dbconn modules, making them safe to import without
circular dependency concerns.
"""
import re
from typing import Any

import sqlalchemy as sa

_VERSION_PART = re.compile(r'\d+')


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection or engine.
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def get_driver_name(obj: Any) -> str:
    """Get the driver family for a connection.

    Same as the dialect name except that MySQL dialects talking to a
    MariaDB server report ``mariadb``.
    """
    name = get_dialect_name(obj)
    dialect = getattr(obj, 'dialect', None)
    if name == 'mysql' and getattr(dialect, 'is_mariadb', False):
        return 'mariadb'
    return name


def get_server_version(obj: Any) -> str:
    """Dotted server version string reported by the dialect, '' if unknown.
    """
    dialect = getattr(obj, 'dialect', None)
    info = getattr(dialect, 'server_version_info', None) or ()
    return '.'.join(str(part) for part in info)


def parse_version(version: str) -> tuple[int, ...]:
    """Leading numeric components of a version string.

    >>> parse_version('10.6.12-MariaDB-1:10.6.12+maria~ubu2004')
    (10, 6, 12)
    >>> parse_version('3.45.1')
    (3, 45, 1)
    >>> parse_version('')
    ()
    """
    head = re.split(r'[^\d.]', version or '', maxsplit=1)[0]
    return tuple(int(part) for part in _VERSION_PART.findall(head))


def version_at_least(version: str, minimum: str) -> bool:
    """Compare two version strings on their numeric components.

    Missing trailing components count as zero, so ``10.2`` equals ``10.2.0``.
    """
    left, right = parse_version(version), parse_version(minimum)
    width = max(len(left), len(right))
    left += (0,) * (width - len(left))
    right += (0,) * (width - len(right))
    return left >= right


def mask_dsn(dsn: str) -> str:
    """Render a DSN with its password hidden, for logs.
    """
    try:
        return sa.engine.make_url(dsn).render_as_string(hide_password=True)
    except sa.exc.ArgumentError:
        return dsn
