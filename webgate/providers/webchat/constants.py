"""
Gemini Web endpoints, header templates and response index table.
"""

INIT_URL = "https://gemini.google.com/app"
GENERATE_URL = (
    "https://gemini.google.com/_/BardChatUi/data/assistant.lamda.BardFrontendService/StreamGenerate"
)
UPLOAD_URL = "https://content-push.googleapis.com/upload"
WARMUP_URL = "https://www.google.com"

UPLOAD_PUSH_ID = "feeds/mcudyrk2a4khkz"

COOKIE_1PSID = "__Secure-1PSID"
COOKIE_1PSIDTS = "__Secure-1PSIDTS"

DEFAULT_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded;charset=utf-8",
    "Host": "gemini.google.com",
    "Origin": "https://gemini.google.com",
    "Referer": "https://gemini.google.com/",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "X-Same-Domain": "1",
}

MODEL_HEADER_NAME = "x-goog-ext-525001261-jspb"

MODEL_HEADERS = {
    "gemini-3.0-pro": {
        MODEL_HEADER_NAME: '[1,null,null,null,"9d8ca3786ebdfbea",null,null,0,[4]]',
    },
    "gemini-2.5-pro": {
        MODEL_HEADER_NAME: '[1,null,null,null,"4af6c7f5da75d65d",null,null,0,[4]]',
    },
    "gemini-2.5-flash": {
        MODEL_HEADER_NAME: '[1,null,null,null,"9ec249fc9ad08861",null,null,0,[4]]',
    },
}

# Access token embeddings on the landing page, tried in order.
TOKEN_PATTERNS = (
    r'"SNlM0e":"(.*?)"',
    r'SNlM0e":"(.*?)"',
    r'SNlM0e\\":\\"(.*?)\\"',
    r'"EOzIkf":"(.*?)"',
    r'EOzIkf":"(.*?)"',
    r'EOzIkf\\":\\"(.*?)\\"',
)

CARD_CONTENT_PATTERN = r"^http://googleusercontent\.com/card_content/\d+"

# Positions inside the decoded response. Every positional lookup goes
# through these tables.
BODY_INDEX = {
    "raw_body": (2,),
    "metadata": (1,),
    "candidates": (4,),
}

CANDIDATE_INDEX = {
    "rcid": (0,),
    "text": (1, 0),
    "card_text": (22, 0),
    "thoughts": (37, 0, 0),
}

MAX_BODY_SEARCH_DEPTH = 7

DEBUG_INIT_HTML = "debug-gemini-init.html"
