"""HTTP trigger for the migration engine."""
