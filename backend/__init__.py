"""Telegram-backed file upload service."""
