"""Centralised selectors for the map search feed and listing detail pages."""

# ==== SEARCH (result feed + map) ====
LISTING_PATH_FRAGMENT = "/maps/place/"
FEED = 'div[role="feed"]'
RESULTS_CONTAINER = (
    FEED,
    'div[aria-label*="Results"]',
    'div[aria-label*="نتایج"]',
    'div[jsaction*="pane.resultContainer"]',
    '[role="main"] div[role="feed"]',
    "div.m6QErb.DxyBCb.XiKgde",
)
# Tried when the resolved container is not itself scrollable.
SCROLLABLE_FALLBACKS = (
    FEED,
    ".m6QErb.DxyBCb.XiKgde",
    ".m6QErb.DxyBCb",
)
PLACE_LINK = (
    'a[href^="https://www.google.com/maps/place/"]',
    f'a[href*="{LISTING_PATH_FRAGMENT}"]',
    'a[data-value*="place"]',
    f'[role="link"][href*="{LISTING_PATH_FRAGMENT}"]',
)
MAIN_PANE = 'div[role="main"]'
LOADER = (
    '[role="progressbar"], .loading, [aria-busy="true"], '
    '[class*="loading"], [class*="spinner"], [class*="loader"]'
)
END_OF_LIST_SELECTOR = "div.m6QErb.XiKgde.tLjsW.eKbjU .HlvSq"
END_OF_LIST_TEXT = (
    "You've reached the end of the list",
    "به پایان لیست رسیدید",
    "لیست تمام شد",
)
MAP_CANVAS = 'canvas[aria-label*="Map"], canvas[role="presentation"], canvas'

# ==== CONSENT interstitial ====
CONSENT_HOST = "consent.google.com"
CONSENT_ACCEPT = (
    'button:has-text("Accept all")',
    'button:has-text("Alle akzeptieren")',
    'button:has-text("قبول کردن")',
    'button[aria-label*="Accept"]',
    'button[aria-label*="Akzeptieren"]',
    'form[action*="consent"] button[type="submit"]',
    "button#L2AGLb",
    'div[role="dialog"] button:last-child',
)

# ==== DETAIL page ====
NAME = "h1"
PHONE_BUTTON = 'button[data-item-id^="phone:"]'
PHONE_LINK = 'a[href^="tel:"]'
ARIA_PHONE = '[aria-label*="Phone"]'
ARIA_PHONE_FA = '[aria-label*="تلفن"]'
ADDRESS_BUTTON = 'button[data-item-id="address"]'
CATEGORY_BUTTON = 'button[jsaction*="category"]'
WEBSITE_LINK = 'a[data-item-id="authority"]'
ABOUT_TAB = 'button[aria-label*="About"]'
ABOUT_TAB_FA = 'button[aria-label*="اطلاعات"]'

PHONE_LABEL_PREFIXES = ("Phone:", "تلفن:")
ADDRESS_LABEL_PREFIXES = ("Address:", "آدرس:")

# ==== CAPTCHA / block pages ====
CAPTCHA_TITLE_MARKERS = ("Sorry", "Robot", "Unusual traffic")
CAPTCHA_ELEMENTS = ('iframe[src*="recaptcha"]', "#recaptcha")
