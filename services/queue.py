import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import aio_pika

from services.preview import generate_preview

logger = logging.getLogger("preview-service")

PREVIEW_JOBS_QUEUE = "preview_jobs"
PREVIEW_RESULTS_QUEUE = "preview_results"
RETRY_INTERVAL = 2.0


def parse_job(body: bytes) -> Optional[dict]:
    """Decode a job message; None when it is not a usable preview job."""
    try:
        data = json.loads(body)
    except ValueError:
        logger.warning("Skipping preview job with malformed JSON")
        return None
    if not isinstance(data, dict) or "urlId" not in data or not isinstance(data.get("originalUrl"), str):
        logger.warning("Skipping preview job without urlId/originalUrl")
        return None
    return data


def build_result(data: dict) -> dict:
    """Run the preview pipeline for one job message and shape the reply."""
    preview = generate_preview(data["originalUrl"])
    return {
        "urlId": data["urlId"],
        "found": preview is not None,
        "preview": preview.model_dump() if preview else None,
        "fetchedAt": datetime.now(timezone.utc).isoformat(),
    }


async def consume_preview_jobs(rabbitmq_url: str):
    while True:
        try:
            connection = await aio_pika.connect_robust(rabbitmq_url)
            async with connection:
                channel = await connection.channel()
                jobs_queue = await channel.declare_queue(PREVIEW_JOBS_QUEUE, durable=True)
                await channel.declare_queue(PREVIEW_RESULTS_QUEUE, durable=True)

                logger.info("Connected to RabbitMQ, consuming preview jobs")

                async with jobs_queue.iterator() as queue_iter:
                    async for message in queue_iter:
                        async with message.process():
                            data = parse_job(message.body)
                            if data is None:
                                continue

                            # the pipeline blocks on requests, keep it off the loop
                            loop = asyncio.get_running_loop()
                            result = await loop.run_in_executor(None, build_result, data)

                            await channel.default_exchange.publish(
                                aio_pika.Message(
                                    body=json.dumps(result).encode(),
                                    delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                                ),
                                routing_key=PREVIEW_RESULTS_QUEUE,
                            )
                            logger.info("Preview result published", extra={"urlId": result["urlId"]})
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(f"RabbitMQ consumer error, retrying in {RETRY_INTERVAL}s: {exc}")
            await asyncio.sleep(RETRY_INTERVAL)
