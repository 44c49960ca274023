"""Infrastructure layer for cwa-quicktest.

Configuration, settings, credential handling and logging setup.
"""
