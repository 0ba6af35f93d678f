"""Shared helpers"""
from .dates import league_now, league_today, parse_date, parse_utc
from .iterables import filter_by, find_first, group_by

__all__ = ['league_now', 'league_today', 'parse_date', 'parse_utc', 'filter_by', 'find_first', 'group_by']
