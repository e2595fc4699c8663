# logger.py
import re
from datetime import datetime
from rich.console import Console
from rich.markup import escape
from field_meta import FIELD_META

# Shared Console Instance
console = Console()

_ENABLED = True

def set_logging(enabled):
    """Mutes (False) or restores (True) all log output."""
    global _ENABLED
    _ENABLED = bool(enabled)

def _timestamp():
    """Returns the current time formatted for the log."""
    return f"[dim]{datetime.now().strftime('%H:%M:%S')}[/dim]"

def info(source, message, style="cyan"):
    """
    Standard System Event Log.
    Automatically escapes brackets so errors like '[Errno 111]' don't break Rich.
    """
    if not _ENABLED: return
    safe_message = escape(str(message))
    safe_source = escape(str(source))
    tag_color = f"bold {style}"
    console.print(f"{_timestamp()} [{tag_color}]{safe_source:<10}[/{tag_color}] {safe_message}")

def warn(source, message):
    """Warning Log."""
    if not _ENABLED: return
    safe_message = escape(str(message))
    safe_source = escape(str(source))
    console.print(f"{_timestamp()} [bold yellow]{safe_source:<10}[/bold yellow] {safe_message}")

def error(source, message):
    """Error Log."""
    if not _ENABLED: return
    safe_message = escape(str(message))
    safe_source = escape(str(source))
    console.print(f"{_timestamp()} [bold red]{safe_source:<10}[/bold red] {safe_message}")

def telemetry(host, field, value, key=None):
    """
    Formatted Sensor Data Log.
    """
    if not _ENABLED: return
    unit = FIELD_META.get(field, ("", ""))[0]

    display_val = f"{value}"
    if value is None:
        display_val = "unavailable"
    elif unit:
        display_val += f" {unit}"

    # We escape the host name just in case it has weird characters
    safe_host = escape(str(host))
    label = escape(str(key or field))

    console.print(
        f"{_timestamp()} 🌡️  [bold deep_sky_blue1]{safe_host:<20}[/bold deep_sky_blue1] "
        f"| [bold white]{label:<18}[/bold white] : [bold white]{escape(display_val)}[/bold white]"
    )

def raw_json(source, raw_str):
    """
    'Tron' style raw JSON formatter.
    Manual parsing is used here so we don't escape the whole thing.
    """
    if not _ENABLED: return
    s = raw_str
    # 1. Hide structure
    s = s.replace('{', '§OB§').replace('}', '§CB§')
    s = s.replace('[', '§LB§').replace(']', '§RB§')
    s = s.replace(',', '§CM§')

    # 2. Format Keys (White)
    s = re.sub(r'"([^"]+)"\s*:', r'[dim]"[/dim][bold white]\1[/bold white][dim]":[/dim]', s)

    # 3. Format Values (Cyan)
    s = re.sub(r'(\[dim\]":\[/dim\]\s*)"([^"]+)"', r'\1[dim]"[/dim][bold cyan]\2[/bold cyan][dim]"[/dim]', s)
    s = re.sub(r'(\[dim\]":\[/dim\]\s*)([0-9.-]+|true|false|null)', r'\1[bold cyan]\2[/bold cyan]', s)

    # 4. Restore structure
    s = s.replace('§OB§', '[dim]{[/dim]').replace('§CB§', '[dim]}[/dim]')
    s = s.replace('§LB§', '[dim][[/dim]').replace('§RB§', '[dim]][/dim]')
    s = s.replace('§CM§', '[dim],[/dim]')

    console.print(
        f"{_timestamp()} 🐞 [bold deep_sky_blue1]{escape(str(source)):<20}[/bold deep_sky_blue1] "
        f"| [bold cyan]RAW[/bold cyan]                : {s}"
    )
