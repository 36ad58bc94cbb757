"""SchoolTalk backend: teacher accounts, student rosters and roster transfer."""

__version__ = "1.0.0"
