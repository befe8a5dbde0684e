#!/usr/bin/env python
"""Command-line entry point for the clinic EMR backend.

Runs Django management commands (``migrate``, ``seed_clinic``,
``ensure_test_users``, ``runserver``) against ``clinic.settings``
unless ``DJANGO_SETTINGS_MODULE`` is already set.
"""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinic.settings')
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Django is not importable. Install the project with "
            "`pip install -e .[test]` inside an active virtual environment."
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
