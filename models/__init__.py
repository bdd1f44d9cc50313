from .db import db
from .user import User
from .session import Session
from .rate_limit import RateLimit
from .account_lockout import AccountLockout
from .security_event import SecurityEvent
from .journal_entry import JournalEntry, JournalPhoto
from .sms_consent import SmsConsent
