from propdash.models.list_view_preference import ListViewPreference  # noqa: F401
