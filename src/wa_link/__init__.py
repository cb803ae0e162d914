"""Keep a messaging session open in a background daemon and drive it from the terminal."""
