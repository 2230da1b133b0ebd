"""wedjat.output — speech, tones and e-mail."""
