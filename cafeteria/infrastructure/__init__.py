"""Infrastructure layer - storage backends, API clients and wiring."""
