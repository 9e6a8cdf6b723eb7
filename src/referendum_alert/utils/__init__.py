"""Pure helpers for amounts, convictions and timestamps."""
