"""User-facing reply texts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

GENERIC_ERROR = "An error occurred. Please try again later."

BANNED = "You are banned from submitting properties."
RATE_LIMITED = "Please wait 10 minutes between submissions."

PROMPT_NAME = "Let's add a new property. Please enter the property name:"
PROMPT_LOCATION = "Great! Now enter the property location:"
PROMPT_PRICE = "Please enter the property price (in Naira):"
PROMPT_TYPE = "Select the property type:"
PROMPT_DESCRIPTION = "Please provide a detailed description of the property:"
PROMPT_IMAGES = "Please send up to 5 images of the property. Send /done when finished."

INVALID_PRICE = "Please enter a valid price (numbers only)."
INVALID_TYPE = "Please select a valid property type from the options."
EMPTY_TEXT = "Please enter some text to continue."
TEXT_TOO_LONG = "That is too long. Please keep it under {limit} characters."
IMAGES_EXPECTED = "Please send images or type /done to finish."

IMAGE_UPLOADED = "Image {count} uploaded successfully. Send more or type /done when finished."
IMAGE_LIMIT_REACHED = "Maximum number of images reached. Type /done to submit your property."
IMAGE_UPLOAD_FAILED = "Failed to upload image. Please try again or type /done to continue without this image."

NO_ACTIVE_SUBMISSION = "No active submission."
NO_SUBMISSION_TO_CANCEL = "No active submission to cancel."
SUBMISSION_CANCELLED = "Property submission cancelled."
COMPLETE_CURRENT_STEP = "Please complete the current step first."
NEED_ONE_IMAGE = "Please upload at least one image of the property."
SUBMITTED = "Your property has been submitted successfully! It will be reviewed by our team."
SAVE_FAILED = "An error occurred while saving your property. Please try again later or contact support."

NOT_REGISTERED = "You need to be registered in our system. Please use /start to register."
ADMIN_REQUIRED = "Admin access required."
UNKNOWN_COMMAND = "Unknown command: {command}. Type /help to see available commands."

WELCOME = """👋 Welcome to Ile Properties Bot, {name}!

This bot helps you submit your property for tokenization and manage tokenized property. Here's what you can do:

- Submit new properties for tokenization
- View your submitted properties
- Get updates on tokenization status

Type /help to see all available commands."""

WEBAPP_MENU_TEXT = "Ile Properties"

HELP = """Ile Properties Bot Commands

Basic Commands:
- /start - Start the bot and see welcome message
- /help - Show this help message

Property Management:
- /add_property - Submit a new property listing
- /my_properties - View your submitted properties
- /cancel - Cancel current property submission

Admin Commands:
- /pending_properties - View properties pending approval
- /all_properties - View all properties
- /ban_user [id] - Ban a user
- /unban_user [id] - Unban a user

To get started, try the /add_property command to submit your first property!"""

NO_OWN_PROPERTIES = "You have not submitted any properties yet. Use /add_property to submit one."
NO_PENDING = (
    "No pending properties found. When users submit properties, they will appear here for your approval."
)
NO_PROPERTIES = "No properties found in the database. When users submit properties, they will appear here."
PROPERTY_ALREADY_PROCESSED = "Property not found or already processed."
MORE_PENDING = "There are more pending properties. Use /pending_properties to view the next one."
NEXT_PROPERTY = "Use /pending_properties to view the next pending property."
APPROVED_ADMIN = '✅ Property "{name}" has been approved.'
REJECTED_ADMIN = '❌ Property "{name}" has been rejected.'
APPROVED_OWNER = 'Your property "{name}" has been approved and is now listed!'
REJECTED_OWNER = 'Your property "{name}" has been rejected. Please contact support for more information.'

BAN_USAGE = "Usage: /ban_user <telegram_id>\n\nExample: /ban_user 123456789"
UNBAN_USAGE = "Usage: /unban_user <telegram_id>\n\nExample: /unban_user 123456789"
USER_NOT_FOUND = "User not found."
USER_BANNED = "User with ID {user_id} has been banned."
USER_UNBANNED = "User with ID {user_id} has been unbanned."

INVALID_ADMIN_SECRET = "Invalid admin secret code."
ADMIN_GRANTED = "You are now an admin! You can use admin commands like /pending_properties"
ADMIN_REGISTERED = "You have been registered as an admin! You can use admin commands like /pending_properties"


def format_naira(amount: Any) -> str:
    value = float(amount or 0)
    if value.is_integer():
        return f"₦{int(value):,}"
    return f"₦{value:,.2f}"


def _parse_when(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_date(value: Any) -> str:
    when = _parse_when(value)
    return when.strftime("%a %b %d %Y") if when else "unknown"


def format_owner_listing(properties: Iterable[Dict[str, Any]]) -> str:
    lines = ["Your Properties:", ""]
    for index, prop in enumerate(properties, start=1):
        lines.append(f"{index}. {prop['name']} - {prop['location']}")
        lines.append(f"   Status: {prop.get('status') or 'pending'}, Price: {format_naira(prop.get('price'))}")
        lines.append(f"   Submitted: {format_date(prop.get('submitted_at'))}")
        lines.append("")
    return "\n".join(lines).rstrip()


def format_recent_listing(properties: Iterable[Dict[str, Any]]) -> str:
    lines = ["Recent Properties:", ""]
    for index, prop in enumerate(properties, start=1):
        lines.append(f"{index}. {prop['name']} - {prop['location']}")
        lines.append(f"   Status: {prop.get('status')}, Price: {format_naira(prop.get('price'))}")
        lines.append("")
    return "\n".join(lines).rstrip()


def format_pending_property(prop: Dict[str, Any]) -> str:
    when = _parse_when(prop.get("submitted_at"))
    return "\n".join(
        [
            f"📝 Pending Property #{prop['id']}",
            "",
            f"Name: {prop['name']}",
            f"Location: {prop['location']}",
            f"Price: {format_naira(prop.get('price'))}",
            f"Tokens Required: {prop.get('tokens')}",
            f"Type: {prop.get('property_type')}",
            f"Description: {prop.get('description')}",
            f"Images: {len(prop.get('images') or [])}",
            f"Submitted By: {prop.get('owner_id')}",
            f"Submitted At: {when.strftime('%Y-%m-%d %H:%M') if when else 'unknown'}",
        ]
    )
