"""Pure, database-free helpers for line topology and network graph search."""
