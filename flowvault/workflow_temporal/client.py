from __future__ import annotations

import time
import uuid
from typing import Any

from temporalio.client import Client

from flowvault.constants import DEFAULT_NAMESPACE, DEFAULT_TEMPORAL_ADDRESS


async def get_client(address: str = DEFAULT_TEMPORAL_ADDRESS, namespace: str = DEFAULT_NAMESPACE) -> Client:
    return await Client.connect(address, namespace=namespace)


def generate_workflow_id(workflow_name: str) -> str:
    return f"{workflow_name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


async def start_workflow_run(
    client: Client,
    workflow_name: str,
    payload: Any,
    *,
    workflow_id: str,
    task_queue: str,
) -> dict[str, str | None]:
    handle = await client.start_workflow(
        workflow_name,
        payload,
        id=workflow_id,
        task_queue=task_queue,
    )
    return {"workflow_id": handle.id, "run_id": handle.first_execution_run_id}


async def wait_for_result(client: Client, workflow_id: str) -> Any:
    return await client.get_workflow_handle(workflow_id).result()


async def signal_workflow(client: Client, workflow_id: str, signal_name: str, data: Any = None) -> None:
    handle = client.get_workflow_handle(workflow_id)
    if data is None:
        await handle.signal(signal_name)
    else:
        await handle.signal(signal_name, data)


async def query_workflow(client: Client, workflow_id: str, query_name: str) -> Any:
    return await client.get_workflow_handle(workflow_id).query(query_name)


async def cancel_workflow(client: Client, workflow_id: str) -> None:
    await client.get_workflow_handle(workflow_id).cancel()


async def terminate_workflow(client: Client, workflow_id: str, reason: str | None = None) -> None:
    await client.get_workflow_handle(workflow_id).terminate(reason=reason)


async def describe_workflow_status(client: Client, workflow_id: str) -> dict[str, Any]:
    description = await client.get_workflow_handle(workflow_id).describe()
    return {
        "workflow_id": description.id,
        "run_id": description.run_id,
        "workflow_type": description.workflow_type,
        "status": description.status.name if description.status else None,
        "task_queue": description.task_queue,
        "start_time": description.start_time.isoformat() if description.start_time else None,
        "close_time": description.close_time.isoformat() if description.close_time else None,
    }
