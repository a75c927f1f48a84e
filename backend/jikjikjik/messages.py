"""User-facing notification strings (Korean, as shown in the web client)."""

# ── Connectivity / protocol ─────────────────────────────────
NETWORK_ERROR = "네트워크 연결을 확인해주세요."
UNREADABLE_RESPONSE = "서버 응답을 처리할 수 없습니다."
MALFORMED_RESPONSE = "서버 응답 형식이 올바르지 않습니다."
TOO_MANY_REQUESTS = "너무 많은 요청이 발생했습니다. 잠시 후 다시 시도해주세요."
INTERNAL_SERVER_ERROR = "서버 내부 오류가 발생했습니다. 잠시 후 다시 시도해주세요."
GENERIC_SERVER_ERROR = "서버 오류가 발생했습니다."

# ── Phone verification ──────────────────────────────────────
PHONE_FORMAT = "올바른 전화번호 형식을 입력해주세요. (010-0000-0000)"
PHONE_BAD_REQUEST = "잘못된 전화번호 형식입니다."
PHONE_AVAILABLE = "사용 가능한 전화번호입니다."
PHONE_DUPLICATE = "이미 등록된 핸드폰 번호입니다."
CHECKING_DUPLICATE = "전화번호 중복을 확인하고 있습니다..."
RECHECKING_DUPLICATE = "전화번호를 다시 확인하고 있습니다..."
SENDING_CODE = "인증번호를 발송하고 있습니다..."
RESENDING_CODE = "새로운 인증번호를 발송하고 있습니다..."
CODE_SENT = "인증번호를 발송했습니다. SMS를 확인해주세요."
CODE_RESENT = "새로운 인증번호를 발송했습니다. SMS를 확인해주세요."
SMS_FAILED = "인증번호 발송에 실패했습니다."
RESEND_NOT_READY = "잠시 후 인증번호를 재발송할 수 있습니다."
CODE_LENGTH = "6자리 인증번호를 입력해주세요."
CODE_MISMATCH = "인증번호가 올바르지 않습니다. 다시 확인해주세요."
CODE_EXPIRED = "인증시간이 만료되었습니다. 다시 시도해주세요."
PHONE_VERIFIED = "휴대폰 인증이 완료되었습니다! ✅"
VERIFY_PHONE_FIRST = "전화번호 인증을 완료해주세요."

# ── Step validation ─────────────────────────────────────────
REQUIRED_FIELDS = "필수 항목을 모두 입력해주세요."
SELECT_NATIONALITY = "국적을 선택해주세요."
SELECT_SKILL = "최소 하나 이상의 기술을 선택해주세요."
ACCOUNT_DIGITS_ONLY = "계좌번호는 숫자만 입력해주세요."
ACCOUNT_HOLDER = "예금주명을 정확히 입력해주세요."
EMAIL_FORMAT = "올바른 이메일 형식을 입력해주세요."
PASSWORD_LENGTH = "비밀번호는 8자 이상이어야 합니다."
PASSWORD_MISMATCH = "비밀번호가 일치하지 않습니다."
ACCEPT_TERMS = "이용약관에 동의해주세요."
SUBMIT_FROM_LAST_STEP = "마지막 단계에서 회원가입을 완료해주세요."

# ── Experience ──────────────────────────────────────────────
SELECT_EXPERIENCE_SKILL = "직종을 선택해주세요."
SELECT_EXPERIENCE_YEARS = "경력 년수를 선택해주세요."
EXPERIENCE_DUPLICATE = "이미 해당 직종의 경력이 추가되어 있습니다."
EXPERIENCE_ADDED = "경력이 추가되었습니다."
EXPERIENCE_DELETE_PROMPT = "이 경력을 삭제하시겠습니까?"
UNKNOWN_TRADE = "알 수 없는 직종입니다."

# ── Submission ──────────────────────────────────────────────
SIGNUP_PROCESSING = "회원가입을 처리중입니다..."
SIGNUP_MISSING_FIELDS = "필수 정보가 누락되었습니다. 모든 단계를 완료해주세요."
SIGNUP_CONFLICT = "이미 등록된 정보입니다."
SIGNUP_BAD_REQUEST = "입력한 정보를 확인해주세요."
SIGNUP_FAILED = "회원가입에 실패했습니다."
SIGNUP_COMPLETE = "회원가입이 완료되었습니다! 로그인 페이지로 이동합니다."

# ── Login ───────────────────────────────────────────────────
LOGIN_ID_REQUIRED = "아이디 또는 전화번호를 입력해주세요."
LOGIN_ID_FORMAT = "올바른 아이디 또는 전화번호 형식이 아닙니다."
PASSWORD_REQUIRED = "비밀번호를 입력해주세요."
LOGIN_FAILED = "로그인에 실패했습니다."
LOGIN_CONNECTION_FAILED = "서버와의 연결에 실패했습니다. 다시 시도해주세요."
LOGIN_SUCCESS = "로그인 성공!"
LOGOUT_SUCCESS = "로그아웃되었습니다."

# ── Concurrency ─────────────────────────────────────────────
REQUEST_IN_PROGRESS = "요청을 처리하고 있습니다. 잠시만 기다려주세요."

# ── Control labels ──────────────────────────────────────────
LABEL_SEND_CODE = "인증번호 발송"
LABEL_CHECKING = "확인 중..."
LABEL_CODE_SENT = "발송완료"
LABEL_RESEND = "인증번호 재발송"
LABEL_NEXT = "다음 단계"
LABEL_NEXT_LOCKED = "인증 완료 후 다음"
LABEL_SUBMIT = "회원가입"
LABEL_SUBMITTING = "처리중..."
