"""Boards, lists and cards."""
