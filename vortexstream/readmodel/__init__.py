"""Read-model assembly: typed queries, the SQL adapter and response views."""
