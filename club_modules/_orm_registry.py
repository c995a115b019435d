"""
Module ORM Registry (``club_modules._orm_registry``).

Imports every ``club_modules.*.orm`` module so ``Base.metadata`` holds all
table definitions before ``create_tables()`` runs.  Imported lazily by
``club_kernel.db.engine.create_tables``; nothing else in the kernel
imports from ``club_modules``.
"""


def import_all_orm_models() -> None:
    """Register every module ORM model.  Idempotent."""
    import club_modules.courses.orm  # noqa: F401
    import club_modules.expenses.orm  # noqa: F401
    import club_modules.members.orm  # noqa: F401
    import club_modules.payments.orm  # noqa: F401


def create_all_tables() -> None:
    """Production-safe entry point: register module models, then create tables."""
    from club_kernel.db.engine import create_tables

    create_tables()
