"""
ridepay_kernel -- persistence, domain types and flush-only services for
driver ride records, CAO allowances and the sign-off/dispute workflow.

Layering (inner to outer):
    db/       -- declarative base, engine, session scope
    domain/   -- pure value objects, status enums and transition tables
    models/   -- SQLAlchemy ORM models
    services/ -- stateful services operating on a caller-owned session
"""
