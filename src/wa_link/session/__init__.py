"""Session connector abstraction: events, models, chat addressing and backends."""
