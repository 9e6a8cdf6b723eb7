"""Engine — central client, ORM models and persistence services."""
