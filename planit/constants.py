"""
Shared constants for planit.

User-facing texts live here so handlers, scheduled jobs and the HTTP endpoints
agree on wording.
"""

# ── Standardised user-facing messages ───────────────────────────────────────────
ERROR_MESSAGE = "Something went wrong. Please try again later."
UNKNOWN_COMMAND_MESSAGE = "I don't know what to do with this message."
REJECTED_MESSAGE = "Sorry, I can't talk to you."

NOT_REGISTERED_MESSAGE = "You are not registered. Use /start to start using this bot."
NOT_SUBSCRIBED_MESSAGE = "You are not subscribed to any calendar. Use /watch to subscribe."
ALREADY_REGISTERED_MESSAGE = "You are already registered. Use /stop to stop using this bot."

GREETING_MESSAGE = (
    "Hello, I'm a bot that can show you your tasks from Google Calendar.\n"
    "If you want to use me, you need to authorize me.\n"
)
AUTHORIZE_MESSAGE = "In order to authorize me, follow this link: \n{url}"
AUTHENTICATED_MESSAGE = (
    "You successfully authenticated! Please use /watch command to subscribe to a calendar."
)
UNSUBSCRIBED_BOT_MESSAGE = "You have successfully unsubscribed from this bot."
UNSUBSCRIBED_CALENDAR_MESSAGE = "You have successfully unsubscribed from calendar events."

SELECT_CALENDAR_MESSAGE = "Please select a calendar you want to watch:"
SELECT_CALENDAR_HINT = "Just copy and paste one of these options."
CALENDAR_SET_MESSAGE = (
    "Calendar successfully set. You will receive notifications about upcoming events."
)

NO_EVENTS_MESSAGE = "You have no upcoming events."
EVENTS_HEADER = "Here are your upcoming events:"
ASK_TASK_MESSAGE = "What is the task?"
EMPTY_TASK_MESSAGE = "You need to specify the task and date. Please start again /new."
EVENT_CREATED_PREFIX = "I created an event:\n"

TASK_NOTIFICATION_PREFIX = "You have a task:\n"
AGENDA_HEADER = "Here is your list for today:"
NO_AGENDA_MESSAGE = "You don't have any tasks for today."
CHANNEL_RENEW_FAILED_MESSAGE = "Something wrong with update channels..."

HELP_MESSAGE = (
    "Commands:\n"
    "  /start     - register and authorize Google Calendar\n"
    "  /watch     - choose a calendar to follow\n"
    "  /events    - list recent and upcoming events\n"
    "  /new       - create an event from a free-text description\n"
    "  /stopwatch - stop following the calendar\n"
    "  /stop      - forget this chat\n"
    "  /help      - show this list"
)

# ── Telegram ────────────────────────────────────────────────────────────────────
PARSE_MODE_MARKDOWN_V2 = "MarkdownV2"

# ── Calendar tracking windows ───────────────────────────────────────────────────
NEW_EVENT_DURATION_MINUTES = 30
TRACKING_LOOKAHEAD_HOURS = 24
TRACKING_MAX_EVENTS = 10
TRACKING_DEFAULT_INTERVAL_HOURS = 1
EVENTS_LOOKBACK_WEEKS = 2
EVENTS_LOOKAHEAD_WEEKS = 1
EVENTS_MAX_RESULTS = 100
