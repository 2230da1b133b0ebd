"""wedjat.ui — Tkinter front end."""
