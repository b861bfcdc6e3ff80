#!/usr/bin/env python3
"""Post a notification-service-shaped delivery to a running gateway.

Usage::

    # Emergency reading from Node 1
    python scripts/send_test_notification.py --url http://localhost:3001/sns/webhook

    # Routine reading under a non-emergency subject
    python scripts/send_test_notification.py --subject "Routine Check" --temperature 22
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
import uuid

import httpx

TOPIC_ARN = "arn:aws:sns:eu-west-1:000000000000:wildfire-alerts"


def build_delivery(args: argparse.Namespace) -> dict[str, object]:
    message = {
        "device": args.device,
        "payload": {
            "temperature": args.temperature,
            "humidity": args.humidity,
            "smoke_level": args.smoke,
            "is_emergency": args.emergency,
            "gps": {"latitude": 36.006397, "longitude": 10.1715},
        },
        "timestamp": int(time.time()),
    }
    return {
        "Type": "Notification",
        "MessageId": str(uuid.uuid4()),
        "TopicArn": TOPIC_ARN,
        "Subject": args.subject,
        "Message": json.dumps(message),
        "Timestamp": time.strftime("%Y-%m-%dT%H:%M:%S.000Z", time.gmtime()),
    }


async def send(args: argparse.Namespace) -> int:
    delivery = build_delivery(args)
    headers = {
        "Content-Type": "text/plain; charset=UTF-8",
        "x-amz-sns-message-type": "Notification",
        "x-amz-sns-topic-arn": TOPIC_ARN,
    }
    async with httpx.AsyncClient(timeout=httpx.Timeout(10.0)) as client:
        try:
            response = await client.post(args.url, content=json.dumps(delivery), headers=headers)
        except httpx.HTTPError as exc:
            print(f"Request failed: {exc}", file=sys.stderr)
            return 1

    print(f"{response.status_code} {response.text}")
    return 0 if response.is_success else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a test delivery to the gateway webhook.")
    parser.add_argument("--url", default="http://localhost:3001/sns/webhook")
    parser.add_argument("--subject", default="Fire Alert")
    parser.add_argument("--device", default="Node 1")
    parser.add_argument("--temperature", type=float, default=95.5)
    parser.add_argument("--humidity", type=float, default=15.2)
    parser.add_argument("--smoke", type=float, default=950.0)
    parser.add_argument("--emergency", action=argparse.BooleanOptionalAction, default=True)
    args = parser.parse_args()

    sys.exit(asyncio.run(send(args)))


if __name__ == "__main__":
    main()
