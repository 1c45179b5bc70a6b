"""
Text commands sent to the bot: follow/unfollow pilots, list subscriptions, info and operator stats.

handle_text_message returns a HandleResult (Reply, NoOp or ServerError); the webhook turns it into
an encrypted reply and an HTTP status. Replies are in German; English command names work too.
"""
import logging
import re
from dataclasses import dataclass
from typing import Union

from sqlalchemy.orm import Session

from xcbot import __version__
from xcbot.core.constants import CONTACT_URL, SOURCE_URL
from xcbot.models.user import User
from xcbot.services import store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reply:
    """Send a reply containing text to the sender of the command."""

    text: str


@dataclass(frozen=True)
class NoOp:
    """Do nothing, processing is done."""


@dataclass(frozen=True)
class ServerError:
    """Processing failed; answer the webhook with HTTP 500."""


HandleResult = Union[Reply, NoOp, ServerError]

# Leading letters are the command, the rest (after whitespace) its argument
COMMAND_RE = re.compile(r"^(?P<command>[a-zA-Z]*)\s*(?P<data>.*)$", re.DOTALL)

FOLLOW_COMMANDS = ("folge", "follow", "add")
UNFOLLOW_COMMANDS = ("stopp", "stop", "remove")
LIST_COMMANDS = ("liste", "list")

USAGE_FOLLOW = (
    "Um einem Piloten zu folgen, sende \"folge _<benutzername>_\" "
    "(Beispiel: \"folge chrigel\"). "
    "Du musst dabei den Benutzernamen von XContest verwenden."
)
USAGE_UNFOLLOW = (
    "Um einem Piloten zu entfolgen, sende \"stopp _<benutzername>_\" "
    "(Beispiel: \"stopp chrigel\"). "
    "Du musst dabei den Benutzernamen von XContest verwenden."
)
MSG_PILOT_WHITESPACE = "⚠️ Fehler: Der XContest-Benutzername darf kein Leerzeichen enthalten!"
MSG_NO_SUBSCRIPTIONS = f"Du folgst noch keinen Piloten.\n\n{USAGE_FOLLOW}"
MSG_GITHUB = f"Dieser Bot ist Open Source (AGPLv3). Den Quellcode findest du hier: {SOURCE_URL}"
MSG_GREETING = (
    "Hallo {name}! 👋\n\n"
    "Mit diesem Bot kannst du Piloten im CCC (XContest Schweiz) folgen. "
    "Du kriegst dann eine sofortige Benachrichtigung, wenn diese einen neuen Flug hochladen. 🪂\n\n"
    "Verfügbare Befehle:\n\n"
    "- *folge _<benutzername>_*: Werde benachrichtigt, wenn der Pilot _<benutzername>_ einen neuen Flug hochlädt. "
    "Du musst dabei den Benutzernamen von XContest verwenden.\n"
    "- *stopp _<benutzername>_*: Werde nicht mehr benachrichtigt, wenn der Pilot _<benutzername>_ einen neuen Flug hochlädt. "
    "Du musst dabei den Benutzernamen von XContest verwenden.\n"
    "- *liste*: Zeige die Liste der Piloten, deren Flüge du abonniert hast.\n"
    "- *github*: Zeige den Link zum Quellcode dieses Bots.\n\n"
    f"Bei Fragen, schicke einfach eine Threema-Nachricht an {CONTACT_URL} !"
)


def parse_command(text: str) -> tuple[str, str] | None:
    """Split text into (lowercased command, stripped argument). None if the text does not match."""
    m = COMMAND_RE.match(text)
    if not m:
        return None
    return m.group("command").lower(), m.group("data").strip()


def handle_text_message(
    text: str,
    sender_identity: str,
    sender_nickname: str | None,
    admin_identity: str | None,
    user: User,
    db: Session,
) -> HandleResult:
    """Process one text command from sender_identity (already resolved to user)."""
    logger.info("Incoming request from %s: %r", sender_identity, text)
    parsed = parse_command(text)
    if parsed is None:
        logger.error("Command regex did not match incoming text %r", text)
        return ServerError()
    command, data = parsed

    if command == "stats" and admin_identity is not None and sender_identity == admin_identity:
        return handle_admin_stats(sender_identity, db)
    if command in FOLLOW_COMMANDS:
        return handle_follow(data, user, db)
    if command in UNFOLLOW_COMMANDS:
        return handle_unfollow(data, user, db)
    if command in LIST_COMMANDS:
        return handle_list(user, db)
    if command == "github":
        return Reply(MSG_GITHUB)
    if command == "version":
        return Reply(f"xc-bot v{__version__}")
    return handle_unknown_command(command, sender_identity, sender_nickname)


def handle_admin_stats(sender_identity: str, db: Session) -> HandleResult:
    logger.info("Received stats request from admin %s", sender_identity)
    try:
        stats = store.get_stats(db)
    except Exception as e:
        logger.error("Could not fetch stats: %s", e)
        return NoOp()
    return Reply(
        "Database stats:\n\n"
        f"- Users: {stats.user_count}\n"
        f"- Subscriptions: {stats.subscription_count}\n"
        f"- Flights: {stats.flight_count}"
    )


def handle_follow(pilot: str, user: User, db: Session) -> HandleResult:
    if not pilot:
        return Reply(USAGE_FOLLOW)
    if any(c.isspace() for c in pilot):
        return Reply(f"{MSG_PILOT_WHITESPACE}\n\n{USAGE_FOLLOW}")
    try:
        store.add_subscription(db, user.id, pilot)
    except Exception as e:
        logger.error("Could not add subscription for uid %s: %s", user.id, e)
        return ServerError()
    return Reply(f"Du folgst jetzt {pilot}!")


def handle_unfollow(pilot: str, user: User, db: Session) -> HandleResult:
    if not pilot:
        return Reply(USAGE_UNFOLLOW)
    try:
        removed = store.remove_subscription(db, user.id, pilot)
    except Exception as e:
        logger.error("Could not remove subscription for uid %s: %s", user.id, e)
        return ServerError()
    if removed:
        return Reply(f"Du folgst jetzt {pilot} nicht mehr.")
    return Reply(f"Du folgst {pilot} nicht.")


def handle_list(user: User, db: Session) -> HandleResult:
    try:
        subscriptions = store.get_subscriptions(db, user.id)
    except Exception as e:
        logger.error("Could not fetch subscriptions for uid %s: %s", user.id, e)
        return ServerError()
    if not subscriptions:
        return Reply(MSG_NO_SUBSCRIPTIONS)
    return Reply("Du folgst folgenden Piloten:\n" + "".join(f"\n- {pilot}" for pilot in subscriptions))


def handle_unknown_command(command: str, sender_identity: str, sender_nickname: str | None) -> HandleResult:
    logger.debug("Unknown command: %r", command)
    name = (sender_nickname or sender_identity).strip()
    return Reply(MSG_GREETING.format(name=name))
