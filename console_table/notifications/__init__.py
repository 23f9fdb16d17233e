"""User facing notifications for table screens."""
