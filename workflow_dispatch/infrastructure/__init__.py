"""Infrastructure layer: GitHub REST client and action output file."""
