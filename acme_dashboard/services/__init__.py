"""Invoice handlers, storage capabilities and dashboard queries."""
