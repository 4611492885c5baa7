"""Django project package for the hospital triage and queue backend."""
