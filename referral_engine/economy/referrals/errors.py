class ReferralError(Exception):
    code = "REFERRAL_ERROR"
    retryable = False


class ReferralValidationError(ReferralError):
    code = "VALIDATION_FAILED"


class ReferralProgramDisabledError(ReferralValidationError):
    code = "PROGRAM_DISABLED"


class ReferralInvalidCodeError(ReferralValidationError):
    code = "INVALID_CODE"


class ReferralReferrerInactiveError(ReferralValidationError):
    code = "REFERRER_INACTIVE"


class ReferralSelfReferralError(ReferralValidationError):
    code = "SELF_REFERRAL"


class ReferralUserNotFoundError(ReferralValidationError):
    code = "USER_NOT_FOUND"


class ReferralSignupNotFoundError(ReferralValidationError):
    code = "SIGNUP_NOT_FOUND"


class ReferralDuplicateSignupError(ReferralError):
    code = "DUPLICATE_SIGNUP"


class ReferralCreditFailedError(ReferralError):
    code = "CREDIT_FAILED"
    retryable = True
