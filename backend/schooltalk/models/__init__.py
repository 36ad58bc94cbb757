from schooltalk.models.account import Account
from schooltalk.models.student import Student

__all__ = ["Account", "Student"]
