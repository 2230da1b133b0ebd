"""wedjat.core — constants, configuration, logging, signals and event loops."""
