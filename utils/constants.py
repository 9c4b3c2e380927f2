"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Store key templates
- Reusable constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# STORE KEYS
# ============================================================

USERS_SET_KEY = "users:set"
SETTINGS_KEY = "user:{uid}:settings"
PROFILE_KEY = "user:{uid}:profile"
GCAL_KEY = "user:{uid}:gcal"
LAST_SEND_KEY = "user:{uid}:last_send"
ONBOARDING_KEY = "onboarding:{uid}"

# ============================================================
# ONBOARDING
# ============================================================

ONBOARDING_WELCOME_MESSAGE = """Welcome! 👋 I'm your WhatsApp productivity assistant.

To get started, what's your name?"""

ASK_EMAIL_MESSAGE = "Nice to meet you, {name}! What's your email address?"

ASK_PHONE_MESSAGE = "Great! What's your phone number? (You can skip this if you prefer)"

INVALID_NAME_MESSAGE = "Please provide your full name (at least 2 characters)."

INVALID_EMAIL_MESSAGE = "Please provide a valid email address."

ONBOARDING_COMPLETE_MESSAGE = """Perfect! Welcome {name}! 🎉

You can now:
• Type "connect" to link your Google Calendar
• Type "agenda" to see your daily schedule
• Type "help" for more commands"""

SKIP_TOKEN = "skip"

# ============================================================
# COMMAND REPLIES
# ============================================================

GREETING_MESSAGE = "Hello! WhatsApp assistant online."
GREETING_NAMED_MESSAGE = "Hello {name}! 👋 WhatsApp assistant online."

HELP_MESSAGE = """🤖 *Available commands:*

• *hi* / *hello* - Say hello
• *connect* - Link your Google Calendar
• *agenda* - Today's events
• *whoami* - Your profile
• *onboard* - Update your profile
• *set tz <Area/City>* - Change your timezone
• *set calendar <id>* - Change the calendar used for your agenda
• *help* - Show this list"""

CONNECT_ALREADY_LINKED_MESSAGE = "✅ Your Google Calendar is already connected. Type *agenda* to see today's events."

CONNECT_LINK_MESSAGE = """🔗 Connect your Google Calendar:

{url}

After authorizing, come back and type *agenda*."""

CONNECT_UNAVAILABLE_MESSAGE = "⚠️ Calendar connection is not available right now. Please try again later."

AGENDA_NOT_LINKED_MESSAGE = "📅 Your calendar isn't connected yet. Type *connect* to link your Google Calendar."

AGENDA_EMPTY_MESSAGE = "No events today 👍"

AGENDA_HEADER = "Today:"

AGENDA_LINE = "• {time} — {summary}"

AGENDA_FAILED_MESSAGE = "Sorry, couldn't fetch your calendar. Please type *connect* to reconnect your Google Calendar."

ALL_DAY_LABEL = "All-day"

NO_TITLE_LABEL = "(no title)"

WHOAMI_MESSAGE = """👤 *Your profile*

Name: {name}
Email: {email}
Phone: {phone}
Calendar: {calendar}"""

WHOAMI_NO_PROFILE_MESSAGE = "I don't know you yet. Type *onboard* to set up your profile."

NOT_PROVIDED_LABEL = "Not provided"
CALENDAR_CONNECTED_LABEL = "Connected ✅"
CALENDAR_NOT_CONNECTED_LABEL = "Not connected"

TIMEZONE_UPDATED_MESSAGE = "Timezone updated → {tz}"

CALENDAR_UPDATED_MESSAGE = "Calendar ID updated → {calendar_id}"

UNKNOWN_COMMAND_MESSAGE = "Sorry, I didn't understand that. Type *help* to see what I can do."

# ============================================================
# PROVIDER
# ============================================================

WASENDER_TEST_API_KEY = "test_api_key_here"
WASENDER_SEND_PATH = "/send-message"
