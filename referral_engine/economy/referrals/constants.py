from __future__ import annotations

from datetime import timedelta

CLICK_STATUS_PENDING = "PENDING"
CLICK_STATUS_COMPLETED = "COMPLETED"
CLICK_STATUS_BLOCKED = "BLOCKED"
CLICK_STATUS_CLAIMED = "CLAIMED"
CLICK_STATUS_EXPIRED = "EXPIRED"

SIGNUP_STATUS_PENDING = "PENDING"
SIGNUP_STATUS_COMPLETED = "COMPLETED"
SIGNUP_STATUS_BLOCKED = "BLOCKED"
SIGNUP_STATUS_CLAIMED = "CLAIMED"

CLAIM_TYPE_CLICKS = "clicks"
CLAIM_TYPE_SIGNUPS = "signups"
CLAIM_TYPE_ALL = "all"
CLAIM_TYPES = frozenset({CLAIM_TYPE_CLICKS, CLAIM_TYPE_SIGNUPS, CLAIM_TYPE_ALL})

USER_STATUS_ACTIVE = "ACTIVE"
INACTIVE_USER_STATUSES = frozenset({"BANNED", "DELETED"})

DEFAULT_CLICK_REWARD = 15
DEFAULT_SIGNUP_REWARD = 30
CLICK_TTL = timedelta(hours=24)

RATE_WINDOW_SHORT = timedelta(hours=1)
RATE_WINDOW_DAY = timedelta(hours=24)

RISK_SCORE_MAX = 100
RISK_SUSPICIOUS_ABOVE = 50
RISK_PRIOR_EVENTS_HIGH = 10
RISK_PRIOR_EVENTS_ELEVATED = 5
RISK_WEIGHT_PRIOR_EVENTS_HIGH = 30
RISK_WEIGHT_PRIOR_EVENTS_ELEVATED = 15
RISK_WEIGHT_WEAK_USER_AGENT = 25
RISK_WEIGHT_MISSING_DEVICE_FIELD = 10
RISK_MIN_USER_AGENT_LENGTH = 20

CLICK_MAX_PER_IP_HOUR = 10
CLICK_MAX_PER_IP_DAY = 50
CLICK_MAX_PER_FINGERPRINT_DAY = 20
CLICK_BLOCK_RISK_ABOVE = 80
CLICK_SUSPICIOUS_IP_HOUR_ABOVE = 5
CLICK_SUSPICIOUS_FINGERPRINT_DAY_ABOVE = 10

SIGNUP_MAX_PER_IP_HOUR = 2
SIGNUP_MAX_PER_IP_DAY = 5
SIGNUP_MAX_PER_FINGERPRINT_DAY = 3
SIGNUP_BLOCK_RISK_ABOVE = 70
SIGNUP_AUTO_VERIFY_RISK_BELOW = 50

CLICK_BLOCK_REASON_IP_HOUR = "Too many clicks per hour from this IP"
CLICK_BLOCK_REASON_IP_DAY = "Daily click limit exceeded for this IP"
CLICK_BLOCK_REASON_FINGERPRINT_DAY = "Daily click limit exceeded for this device"
SIGNUP_BLOCK_REASON_IP_HOUR = "Too many signups per hour from this IP"
SIGNUP_BLOCK_REASON_IP_DAY = "Daily signup limit exceeded for this IP"
SIGNUP_BLOCK_REASON_FINGERPRINT_DAY = "Daily signup limit exceeded for this device"
BLOCK_REASON_HIGH_RISK = "High risk score detected"
SIGNUP_MANUAL_REVIEW_NOTE = "Moderate risk score - requires manual verification"

FINGERPRINT_LENGTH = 32

TIER_BRONZE = "BRONZE"
TIER_SILVER = "SILVER"
TIER_GOLD = "GOLD"
TIER_DIAMOND = "DIAMOND"

EVENT_REFERRAL_CLICK = "referral_click"
EVENT_REFERRAL_SIGNUP = "referral_signup"
EVENT_REFERRAL_CLAIM = "referral_claim"
EVENT_REFERRAL_TIER_UPGRADE = "referral_tier_upgrade"
EVENT_REFERRAL_SIGNUP_REVIEW = "referral_signup_review"

EVENT_STATUS_SUCCESS = "SUCCESS"
EVENT_STATUS_BLOCKED = "BLOCKED"
EVENT_STATUS_PENDING = "PENDING"

LEDGER_SOURCE_REFERRAL = "REFERRAL"
LEDGER_ACTION_EARN = "EARN"
CLAIM_CREDIT_REASON = "Referral rewards claim"

REFERRED_USERS_MAX_PAGE_SIZE = 100
STATS_REBUILD_ACTIVITY_WINDOW = timedelta(hours=24)
SIGNUP_MANUAL_APPROVAL_NOTE = "Manually verified"
SIGNUP_MANUAL_REJECTION_REASON = "Rejected during manual review"
