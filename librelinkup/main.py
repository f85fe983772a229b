#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import json
import os
import sys
import time
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .client import LibreLinkUpClient
from .config import ClientConfig
from .errors import LibreLinkUpError
from .logs import setup_logger
from .models import Reading
from .mqtt import MqttPublisher
from .polling import PollingHandle
from .utils import iso_now


DUMP_CHOICES = ("user", "account", "connections", "logbook", "notifications", "country")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="librelinkup",
        description="LibreLinkUp follower client: current reading, averaged polling loop, optional MQTT publish.",
    )

    # credentials
    p.add_argument("--email", default=os.environ.get("LIBRE_LINK_EMAIL"),
                   help="LibreLinkUp email (default $LIBRE_LINK_EMAIL)")
    p.add_argument("--password", default=os.environ.get("LIBRE_LINK_PASSWORD"),
                   help="LibreLinkUp password (default $LIBRE_LINK_PASSWORD)")

    # API
    p.add_argument("--region", default=None, help="Region code (us, eu, de, ...; default global)")
    p.add_argument("--api-version", default=None, help="API version header (default 4.16.0)")
    p.add_argument("--connection-name", default=None, help='Patient to follow, "First Last" (default first connection)')
    p.add_argument("--timeout", type=float, default=None, help="HTTP timeout seconds (default none)")
    p.add_argument("--no-verify-tls", action="store_true", help="Disable TLS verification (not recommended)")

    # output/logging
    p.add_argument("--log-level", default="INFO", help="Log level: DEBUG, INFO, WARNING, ERROR (default INFO)")
    p.add_argument("--tz", default="UTC", help="Timezone for log timestamps (default UTC)")
    p.add_argument("--print-history", action="store_true", help="Include history in single-shot output")
    p.add_argument("--dump", choices=DUMP_CHOICES, default=None, help="Print one API document and exit")
    p.add_argument("--country", default="US", help="Country code for --dump country (default US)")

    # loop
    p.add_argument("--loop", action="store_true", help="Poll forever and emit averaged readings")
    p.add_argument("--interval", type=float, default=15.0, help="Poll interval seconds (default 15)")
    p.add_argument("--average-count", type=int, default=5, help="Distinct readings per average (default 5)")

    # MQTT
    p.add_argument("--mqtt-publish", action="store_true", help="Publish averages to MQTT")
    p.add_argument("--mqtt-host", default="localhost", help="MQTT host")
    p.add_argument("--mqtt-port", type=int, default=1883, help="MQTT port")
    p.add_argument("--mqtt-user", default="", help="MQTT username")
    p.add_argument("--mqtt-password", default="", help="MQTT password")
    p.add_argument("--mqtt-keepalive", type=int, default=30, help="MQTT keepalive seconds (default 30)")
    p.add_argument("--mqtt-base-topic", default="librelinkup", help="Base topic (default librelinkup)")
    p.add_argument("--master-id", default="MASTER", help="Master id segment (default MASTER)")
    p.add_argument("--mqtt-topic-average-suffix", default="average", help="Average topic suffix (default average)")
    p.add_argument("--mqtt-retain", action="store_true", help="MQTT retain flag")
    p.add_argument("--mqtt-qos", type=int, default=0, choices=[0, 1, 2], help="MQTT QoS (0/1/2)")
    p.add_argument("--mqtt-publish-health", action="store_true", help="Publish poller health JSON to .../health")
    p.add_argument("--mqtt-health-retain", action="store_true", help="Retain health topic")

    return p


def build_config(args: argparse.Namespace) -> ClientConfig:
    return ClientConfig(
        username=args.email or "",
        password=args.password or "",
        api_version=args.api_version,
        region=args.region,
        connection_name=args.connection_name,
        timeout_s=args.timeout,
        verify_tls=not args.no_verify_tls,
    )


def resolve_tz(name: str):
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def print_json(obj: Any):
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def dump(client: LibreLinkUpClient, what: str, country: str) -> Any:
    if what == "user":
        return client.get_user()
    if what == "account":
        return client.get_account()
    if what == "connections":
        return [c.raw for c in client.get_connections()]
    if what == "logbook":
        return client.get_logbook(client.connection_id())
    if what == "notifications":
        return client.get_notification_settings(client.connection_id())
    return client.get_country_config(country)


def read_once(client: LibreLinkUpClient, with_history: bool) -> Dict[str, Any]:
    result = client.read()
    out: Dict[str, Any] = {"current": result.current.to_dict()}
    if with_history:
        out["history"] = [r.to_dict() for r in result.history]
    return out


def health_payload(handle: PollingHandle, start_epoch: float, tz, mqtt_pub: Optional[MqttPublisher]) -> Dict[str, Any]:
    engine = handle.engine
    payload = {
        "ts_local": iso_now(tz),
        "uptime_s": int(time.time() - start_epoch),
        "poll": {
            "running": handle.is_running(),
            "ok": engine.last_error == "",
            "ticks": engine.tick_count,
            "errors": engine.error_count,
            "averages": engine.emit_count,
            "window": len(engine.window),
            "last_error": engine.last_error,
        },
    }
    if mqtt_pub is not None:
        payload["mqtt"] = {
            "connected": mqtt_pub.connected,
            "reconnects": int(mqtt_pub.reconnects),
        }
    return payload


def run_loop(client: LibreLinkUpClient, args: argparse.Namespace, tz, logger, mqtt_pub: Optional[MqttPublisher]):
    def on_average(average: Reading, window: List[Reading], history: List[Reading]):
        logger.info(
            "[avg] %.0f mg/dL %s over %d readings (history=%d)",
            average.value, average.trend.value, len(window), len(history),
        )
        print(json.dumps({"average": average.to_dict(), "count": len(window)}, ensure_ascii=False), flush=True)
        if mqtt_pub is not None:
            mqtt_pub.publish_average(average, window, history, retain=args.mqtt_retain, qos=args.mqtt_qos)

    start_epoch = time.time()
    handle = client.read_averaged(args.average_count, on_average, args.interval)

    try:
        while not handle.join(timeout=args.interval):
            if mqtt_pub is not None and args.mqtt_publish_health:
                try:
                    mqtt_pub.publish_health(health_payload(handle, start_epoch, tz, mqtt_pub),
                                            retain=args.mqtt_health_retain)
                except Exception as ex:
                    logger.warning("[health] publish failed: %s", ex)
    except KeyboardInterrupt:
        logger.info("[loop] interrupted, stopping")
    finally:
        handle.cancel()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    tz = resolve_tz(args.tz)
    logger = setup_logger(args.log_level, tz)

    if not args.email or not args.password:
        logger.error("email and password are required (--email/--password or LIBRE_LINK_EMAIL/LIBRE_LINK_PASSWORD)")
        return 2

    mqtt_pub: Optional[MqttPublisher] = None
    client: Optional[LibreLinkUpClient] = None

    try:
        client = LibreLinkUpClient(build_config(args), logger=logger)

        if args.dump:
            print_json(dump(client, args.dump, args.country))
            return 0

        if not args.loop:
            print_json(read_once(client, args.print_history))
            logger.info("✔ Done")
            return 0

        if args.mqtt_publish:
            mqtt_pub = MqttPublisher(
                host=args.mqtt_host,
                port=args.mqtt_port,
                user=args.mqtt_user,
                password=args.mqtt_password,
                keepalive=args.mqtt_keepalive,
                base_topic=args.mqtt_base_topic,
                master_id=args.master_id,
                tz=tz,
                logger=logger,
                average_suffix=args.mqtt_topic_average_suffix,
            )
            mqtt_pub.connect()

        logger.info("[loop] interval=%ss average_count=%d", args.interval, args.average_count)
        run_loop(client, args, tz, logger, mqtt_pub)
        return 0

    except LibreLinkUpError as ex:
        logger.error("%s", ex)
        return 1

    finally:
        if mqtt_pub is not None:
            mqtt_pub.close()
        if client is not None:
            client.close()


if __name__ == "__main__":
    sys.exit(main())
