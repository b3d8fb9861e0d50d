"""Service layer: completion client, analyzers and the mentor session."""
