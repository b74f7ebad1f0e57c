"""sqla-adminkit testing utilities — MockSubject, assertions, and fixtures.

- **MockSubject / factories**: lightweight subjects with role sets.
- **Assertion helpers**: ``assert_allowed``, ``assert_denied``,
  ``assert_projection``.
- **Fixtures**: ``admin_registry``, ``admin_config``,
  ``isolated_admin_config``.

Example::

    from sqla_adminkit.testing import assert_denied, make_user

    def test_interns_cannot_edit_prices(admin_registry):
        product = admin_registry.register(
            Product, metas={"price": {"permission": Permission().allow("crud", "admin")}}
        )
        assert_denied(make_user(2, "intern"), "update", product.get_meta("price"))
"""

from sqla_adminkit.testing._assertions import assert_allowed, assert_denied, assert_projection
from sqla_adminkit.testing._fixtures import admin_config, admin_registry, isolated_admin_config
from sqla_adminkit.testing._subjects import MockSubject, make_admin, make_anonymous, make_user

__all__ = [
    "MockSubject",
    "admin_config",
    "admin_registry",
    "assert_allowed",
    "assert_denied",
    "assert_projection",
    "isolated_admin_config",
    "make_admin",
    "make_anonymous",
    "make_user",
]
