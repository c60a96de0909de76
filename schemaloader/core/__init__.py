"""Pipeline stages: catalog access, naming, selection, building and emission."""
