#!/usr/bin/env python3
"""
FILE: weather_sender.py
DESCRIPTION:
  Reads the environment sensor on a fixed interval and pushes the readings
  to the monitoring server with the trapper protocol.
  One cycle = capture batch -> TrapperSender.send() -> log outcome. No retries;
  a failed cycle simply waits for the next interval.
"""
import argparse
import sys
import threading
import time

# --- RICH UI IMPORTS ---
from rich.panel import Panel
from rich.table import Table
from rich import box

# --- LOCAL IMPORTS ---
import config
from field_meta import FIELD_META, FIELD_ORDER
from sensors_env import SOURCES, SensorInitError, create_source
from trapper import Measurement, SenderState, TrapperSender
from utils import get_system_hostname, is_reading
import version

# --- LOGGER IMPORT ---
import logger
from logger import console


# ---------------- DASHBOARD ----------------
def get_startup_panel(settings, host, source_name):
    table = Table(box=box.HORIZONTALS, show_header=False, expand=True, padding=(0, 1))
    table.add_column("COMPONENT", style="bold cyan", justify="left", ratio=1)
    table.add_column("STATUS", style="bold white", justify="right", ratio=2)

    table.add_row("SERVER", f"{settings.zabbix_server}:{settings.zabbix_port}")
    table.add_row("HOST", host)
    table.add_row("SENSOR", source_name.upper())
    for field, key in settings.item_keys.items():
        table.add_row(FIELD_META[field][1].upper(), key)
    table.add_row("INTERVAL", f"{settings.send_interval:g}s (reply timeout {settings.response_timeout:g}s)")
    if settings.trapper_extended_length:
        table.add_row("LENGTH", "[bold yellow]EXTENDED (64-bit)[/bold yellow]")

    return Panel(
        table,
        border_style="cyan",
        box=box.ROUNDED,
        title=f"[bold cyan] ❖ TRAPPER SENDER v{version.__version__} ❖ [/bold cyan]",
    )


# ---------------- LOGIC ----------------

def build_batch(readings, settings):
    """
    Turns one Readings tuple into the ordered list of Measurements.
    Unreadable values are dropped, or replaced by settings.unavailable_value when set.
    """
    keys = settings.item_keys
    batch = []
    for field in FIELD_ORDER:
        value = getattr(readings, field)
        if not is_reading(value):
            if settings.unavailable_value is None:
                continue
            value = settings.unavailable_value
        batch.append(Measurement(keys[field], float(value)))
    return batch


def log_result(result, host, show_raw_json=False):
    if result.status is SenderState.ACKNOWLEDGED:
        logger.info("[TRAPPER]", f"✔ Sent to {host} in {result.elapsed:.2f}s. Server: {result.response}", style="green")
    elif result.peer_closed:
        logger.warn("[TRAPPER]", f"Hung up by server: {result.error}")
    elif result.status is SenderState.TIMED_OUT:
        logger.warn("[TRAPPER]", f"Timed out: {result.error}")
    else:
        logger.error("[TRAPPER]", f"{result.status.value.replace('_', ' ').title()}: {result.error}")

    if show_raw_json:
        logger.raw_json("[TRAPPER]", result.payload)
    else:
        logger.info("[TRAPPER]", f"Payload: {result.payload}", style="dim cyan")


def send_cycle(sender, source, host, settings):
    """
    Runs one capture + send. Returns the SendResult, or None if nothing was sent.
    """
    try:
        readings = source.read()
    except (OSError, RuntimeError, ValueError) as e:
        logger.error("[SENSOR]", f"Read failed: {e}")
        return None

    keys = settings.item_keys
    for field in FIELD_ORDER:
        logger.telemetry(host, field, getattr(readings, field), key=keys[field])

    batch = build_batch(readings, settings)
    if not batch:
        logger.warn("[SENSOR]", "No usable readings this cycle. Nothing sent.")
        return None

    result = sender.send(host, batch)
    log_result(result, host, settings.debug_raw_json)
    return result


def run_forever(sender, source, host, settings, stop_event=None, max_cycles=None):
    """
    Fixed-interval loop. Cycles never overlap: a slow cycle pushes the next one back
    instead of queueing extra sends.
    """
    stop_event = stop_event or threading.Event()
    interval = settings.send_interval
    cycles = 0
    next_run = time.monotonic()

    while not stop_event.is_set():
        send_cycle(sender, source, host, settings)
        cycles += 1
        if max_cycles is not None and cycles >= max_cycles:
            break

        next_run += interval
        now = time.monotonic()
        if next_run < now:
            next_run = now
        stop_event.wait(next_run - now)
    return cycles


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Push BME280 readings to a monitoring server over the trapper protocol")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit (status 0 on acknowledgment)")
    parser.add_argument("--source", choices=SOURCES, default=None, help="Override SENSOR_SOURCE")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    settings = config.settings
    source_name = args.source or settings.sensor_source
    host = settings.zabbix_host or get_system_hostname()

    # --- 1. SENSOR ---
    try:
        source = create_source(source_name, settings)
    except (SensorInitError, ValueError) as e:
        logger.error("CRITICAL", f"Sensor initialization failed: {e}")
        return 1
    logger.info("[STARTUP]", f"Sensor '{source_name}' initialized.")

    sender = TrapperSender.from_settings(settings)
    console.print(get_startup_panel(settings, host, source_name))

    # --- 2. RUN ---
    if args.once:
        result = send_cycle(sender, source, host, settings)
        return 0 if result is not None and result.ok else 1

    try:
        run_forever(sender, source, host, settings)
    except KeyboardInterrupt:
        logger.warn("[SHUTDOWN]", "Stopping sender...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
