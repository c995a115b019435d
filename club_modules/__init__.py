"""
Club modules: members, courses (enrollment and attendance), payments,
expenses and financial reporting.

Each module follows the same layout:
    models.py   frozen DTOs and enums
    orm.py      SQLAlchemy persistence models (TrackedBase)
    service.py  the module's public entry point; owns the transaction boundary
"""
