"""AWS session and client helpers."""
