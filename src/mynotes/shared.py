import inspect
import textwrap
import shutil
import os
from datetime import date, datetime
from pathlib import Path
from dateutil.relativedelta import relativedelta

from mynotes.mynotes_env import MynotesEnvironment

ELLIPSIS_CHAR = "…"

EPOCH = date(1970, 1, 1)
DATE_FMT = "%Y-%m-%d"
TIME_FMT = "%H:%M"

# Colors for UI elements
LIGHT_SKY_BLUE = "#87CEFA"
GOLDENROD = "#DAA520"
LIME_GREEN = "#32CD32"
DARK_GRAY = "#A9A9A9"
DARK_ORANGE = "#FF8C00"
TOMATO = "#FF6347"
KHAKI = "#F0E68C"

HEADER_COLOR = LIGHT_SKY_BLUE
LABEL_COLOR = GOLDENROD
DONE_COLOR = DARK_GRAY
ACTIVE_COLOR = LIME_GREEN
PASTDUE_COLOR = DARK_ORANGE
ERROR_COLOR = TOMATO
FRAME_COLOR = KHAKI


def today() -> date:
    return date.today()


def latest_allowed(anchor: date | None = None) -> date:
    """Upper bound for user supplied dates: ten years past ``anchor``."""
    anchor = anchor or today()
    return anchor + relativedelta(years=10)


def fmt_date(d: date | None, missing: str = "Not set") -> str:
    if d is None:
        return missing
    return d.strftime(DATE_FMT)


def truncate_string(s: str, max_length: int) -> str:
    # Truncate the string to the specified max length, adding an ellipsis if needed
    if len(s) > max_length:
        return f"{s[: max_length - 1]}{ELLIPSIS_CHAR}"
    return s


def split_text(text: str) -> list[str]:
    """Split editor text into lines without dropping a trailing empty line."""
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def _get_runtime_home() -> Path:
    override = os.environ.get("MYNOTES_HOME")
    if override:
        return Path(override).expanduser()
    return MynotesEnvironment().home


def _resolve_log_file_path(file_path: str | Path) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return _get_runtime_home() / path


def _default_log_relative_path(kind: str) -> Path:
    """Return logs/log_<YYMMDD>.md style paths under the runtime home."""
    suffix = datetime.now().strftime("%y%m%d")
    return Path("logs") / f"{kind}_{suffix}.md"


def _caller_name(frame) -> str:
    func_name = frame.f_code.co_name
    # Detect instance/class/static context
    if "self" in frame.f_locals:  # instance method
        cls_name = frame.f_locals["self"].__class__.__name__
        return f"{cls_name}.{func_name}"
    if "cls" in frame.f_locals:  # classmethod
        cls_name = frame.f_locals["cls"].__name__
        return f"{cls_name}.{func_name}"
    return func_name


def _write_entry(
    kind: str,
    caller_name: str,
    msg: str,
    file_path: str | Path | None,
    print_output: bool,
) -> None:
    # Format the line header
    lines = [
        f"- {datetime.now().strftime('%H:%M:%S')} {kind}_msg ({caller_name}):  ",
    ]
    # Wrap the message text
    lines.extend(
        [
            f"\n{x}"
            for x in textwrap.wrap(
                msg.strip(),
                width=max(shutil.get_terminal_size()[0] - 6, 20),
                initial_indent="   ",
                subsequent_indent="   ",
            )
        ]
    )
    lines.append("\n\n")

    # Best-effort file logging; fall back to console when the file is unwritable.
    if file_path is None:
        file_path = _default_log_relative_path(kind)
    log_path = _resolve_log_file_path(file_path)

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.writelines(lines)
    except OSError:
        print_output = True

    if print_output:
        print("".join(lines))


def log_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """
    Log a message and save it directly to a file.

    Args:
        msg (str): The message to log.
        file_path (str | Path | None, optional): Overrides the default path when
            provided. Defaults to ``None`` which writes to ``logs/log_<YYMMDD>.md``.
        print_output (bool, optional): If True, also print to console.
    """
    frame = inspect.stack()[1].frame
    _write_entry("log", _caller_name(frame), msg, file_path, print_output)

