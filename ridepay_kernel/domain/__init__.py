"""Pure domain layer: value objects, status enums and transition tables."""
