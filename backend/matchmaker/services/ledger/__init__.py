"""Durable ledgers: identifier sequences, players and finished matches.

Most functions here only stage changes on ``db.session``. Callers group them
inside ``unit_of_work()`` while holding the per-key locks for every player,
session and sequence they touch, so a request commits all of its changes or
none of them. ``create_player`` is self-contained and owns its transaction.
"""
