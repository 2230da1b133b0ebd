"""wedjat.text — the composition buffer."""
