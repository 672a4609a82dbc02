"""Render Kubernetes objects and API payloads as artifact text."""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable, Sequence

import yaml
from kubernetes import client
from kubernetes.utils import parse_quantity
from rich.console import Console
from rich.table import Table
from rich.text import Text

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)
TABLE_WIDTH = 1000


@lru_cache(maxsize=1)
def _serializer() -> client.ApiClient:
    return client.ApiClient()


def to_dict(obj: Any) -> Any:
    """Plain-data form of a client model (camelCase keys, like the API returns)."""
    data = _serializer().sanitize_for_serialization(obj)
    if isinstance(data, dict):
        data.get("metadata", {}).pop("managedFields", None)
    return data


def to_yaml(obj: Any) -> str:
    return yaml.safe_dump(to_dict(obj), sort_keys=False, default_flow_style=False)


def to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str) + "\n"


def table_text(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Render rows as a borderless, kubectl-style column table."""
    table = Table(box=None, show_edge=False, pad_edge=False, header_style="")
    for h in headers:
        table.add_column(h, no_wrap=True)
    for row in rows:
        table.add_row(*(Text("" if v is None else str(v)) for v in row))
    buf = io.StringIO()
    Console(file=buf, width=TABLE_WIDTH, color_system=None, markup=False, emoji=False).print(table)
    return "\n".join(line.rstrip() for line in buf.getvalue().splitlines()) + "\n"


def age(ts: datetime | None, now: datetime | None = None) -> str:
    """Short human age of a timestamp, e.g. 5d, 3h, 12m, 40s."""
    if ts is None:
        return "<unknown>"
    now = now or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    seconds = max(int((now - ts).total_seconds()), 0)
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def _created(obj: Any) -> datetime | None:
    return getattr(obj.metadata, "creation_timestamp", None)


# Pods


def pod_status(pod: Any) -> str:
    """Display status the way kubectl get pods shows it."""
    if pod.metadata.deletion_timestamp:
        return "Terminating"
    for cs in getattr(pod.status, "container_statuses", None) or []:
        state = cs.state
        if state and state.waiting and state.waiting.reason:
            return state.waiting.reason
        if state and state.terminated and state.terminated.reason:
            return state.terminated.reason
    return getattr(pod.status, "phase", None) or "Unknown"


def pods_table(pods: list[Any]) -> str:
    rows = []
    for p in pods:
        statuses = getattr(p.status, "container_statuses", None) or []
        total = len(getattr(p.spec, "containers", None) or []) or len(statuses)
        ready = sum(1 for cs in statuses if cs.ready)
        restarts = sum(cs.restart_count or 0 for cs in statuses)
        rows.append(
            (
                p.metadata.name,
                f"{ready}/{total}",
                pod_status(p),
                restarts,
                age(_created(p)),
                getattr(p.status, "pod_ip", None) or "<none>",
                getattr(p.spec, "node_name", None) or "<none>",
            )
        )
    return table_text(("NAME", "READY", "STATUS", "RESTARTS", "AGE", "IP", "NODE"), rows)


# Services, endpoints, ingress


def _service_ports(svc: Any) -> str:
    ports = []
    for p in svc.spec.ports or []:
        text = f"{p.port}"
        if p.node_port:
            text += f":{p.node_port}"
        ports.append(f"{text}/{p.protocol or 'TCP'}")
    return ",".join(ports) or "<none>"


def _external_ips(svc: Any) -> str:
    ingress = getattr(getattr(svc.status, "load_balancer", None), "ingress", None) or []
    addrs = [i.hostname or i.ip for i in ingress if i.hostname or i.ip]
    # older client releases name the field external_i_ps
    addrs.extend(getattr(svc.spec, "external_ips", None) or getattr(svc.spec, "external_i_ps", None) or [])
    return ",".join(addrs) or "<none>"


def services_table(services: list[Any]) -> str:
    rows = [
        (
            s.metadata.name,
            s.spec.type,
            s.spec.cluster_ip or "<none>",
            _external_ips(s),
            _service_ports(s),
            age(_created(s)),
            ",".join(f"{k}={v}" for k, v in (s.spec.selector or {}).items()) or "<none>",
        )
        for s in services
    ]
    return table_text(("NAME", "TYPE", "CLUSTER-IP", "EXTERNAL-IP", "PORT(S)", "AGE", "SELECTOR"), rows)


def endpoints_table(endpoints: list[Any]) -> str:
    rows = []
    for ep in endpoints:
        addrs = []
        for subset in ep.subsets or []:
            for addr in subset.addresses or []:
                for port in subset.ports or [None]:
                    addrs.append(f"{addr.ip}:{port.port}" if port else addr.ip)
        rows.append((ep.metadata.name, ",".join(addrs) or "<none>", age(_created(ep))))
    return table_text(("NAME", "ENDPOINTS", "AGE"), rows)


def ingress_table(ingresses: list[Any]) -> str:
    rows = []
    for ing in ingresses:
        hosts = [r.host for r in ing.spec.rules or [] if r.host]
        lb = getattr(getattr(ing.status, "load_balancer", None), "ingress", None) or []
        address = ",".join(i.hostname or i.ip for i in lb if i.hostname or i.ip)
        ports = "80, 443" if ing.spec.tls else "80"
        rows.append(
            (
                ing.metadata.name,
                ing.spec.ingress_class_name or "<none>",
                ",".join(hosts) or "*",
                address,
                ports,
                age(_created(ing)),
            )
        )
    return table_text(("NAME", "CLASS", "HOSTS", "ADDRESS", "PORTS", "AGE"), rows)


# Nodes and storage


def _node_ready(node: Any) -> str:
    for c in getattr(node.status, "conditions", None) or []:
        if c.type == "Ready":
            status = "Ready" if c.status == "True" else "NotReady"
            return f"{status},SchedulingDisabled" if getattr(node.spec, "unschedulable", False) else status
    return "Unknown"


def _node_roles(node: Any) -> str:
    prefix = "node-role.kubernetes.io/"
    roles = [k[len(prefix):] for k in (node.metadata.labels or {}) if k.startswith(prefix)]
    return ",".join(sorted(roles)) or "<none>"


def _internal_ip(node: Any) -> str:
    for addr in getattr(node.status, "addresses", None) or []:
        if addr.type == "InternalIP":
            return addr.address
    return "<none>"


def nodes_table(nodes: list[Any]) -> str:
    rows = []
    for n in nodes:
        info = getattr(n.status, "node_info", None)
        rows.append(
            (
                n.metadata.name,
                _node_ready(n),
                _node_roles(n),
                age(_created(n)),
                getattr(info, "kubelet_version", None) or "",
                _internal_ip(n),
                getattr(info, "os_image", None) or "",
                getattr(info, "kernel_version", None) or "",
                getattr(info, "container_runtime_version", None) or "",
            )
        )
    headers = (
        "NAME",
        "STATUS",
        "ROLES",
        "AGE",
        "VERSION",
        "INTERNAL-IP",
        "OS-IMAGE",
        "KERNEL-VERSION",
        "CONTAINER-RUNTIME",
    )
    return table_text(headers, rows)


def pvc_table(pvcs: list[Any]) -> str:
    rows = [
        (
            c.metadata.name,
            getattr(c.status, "phase", None) or "",
            c.spec.volume_name or "",
            (getattr(c.status, "capacity", None) or {}).get("storage", ""),
            ",".join(c.spec.access_modes or []),
            c.spec.storage_class_name or "",
            age(_created(c)),
        )
        for c in pvcs
    ]
    return table_text(("NAME", "STATUS", "VOLUME", "CAPACITY", "ACCESS MODES", "STORAGECLASS", "AGE"), rows)


# Workloads


def _containers(workload: Any) -> tuple[str, str]:
    containers = workload.spec.template.spec.containers or []
    return ",".join(c.name for c in containers), ",".join(c.image or "" for c in containers)


def statefulsets_table(sets: list[Any]) -> str:
    rows = []
    for s in sets:
        names, images = _containers(s)
        ready = f"{s.status.ready_replicas or 0}/{s.spec.replicas if s.spec.replicas is not None else 1}"
        rows.append((s.metadata.name, ready, age(_created(s)), names, images))
    return table_text(("NAME", "READY", "AGE", "CONTAINERS", "IMAGES"), rows)


def deployments_table(deployments: list[Any]) -> str:
    rows = []
    for d in deployments:
        names, images = _containers(d)
        status = d.status
        desired = d.spec.replicas if d.spec.replicas is not None else 1
        match_labels = (d.spec.selector.match_labels if d.spec.selector else None) or {}
        selector = ",".join(f"{k}={v}" for k, v in match_labels.items())
        rows.append(
            (
                d.metadata.name,
                f"{status.ready_replicas or 0}/{desired}",
                status.updated_replicas or 0,
                status.available_replicas or 0,
                age(_created(d)),
                names,
                images,
                selector or "<none>",
            )
        )
    return table_text(
        ("NAME", "READY", "UP-TO-DATE", "AVAILABLE", "AGE", "CONTAINERS", "IMAGES", "SELECTOR"), rows
    )


# Events


def event_time(ev: Any) -> datetime:
    """Last time the event was observed, falling back through older fields."""
    for ts in (
        ev.last_timestamp,
        getattr(ev, "event_time", None),
        ev.first_timestamp,
        getattr(ev.metadata, "creation_timestamp", None),
    ):
        if ts:
            return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
    return _EPOCH


def events_table(events: list[Any], tail: int | None = None) -> str:
    """Events oldest-first by last observation; with ``tail`` only the newest rows are kept."""
    ordered = sorted(events, key=event_time)
    if tail is not None:
        ordered = ordered[-tail:] if tail > 0 else []
    rows = []
    for ev in ordered:
        obj = ev.involved_object
        seen = event_time(ev)
        rows.append(
            (
                age(seen if seen is not _EPOCH else None),
                ev.type or "Normal",
                ev.reason or "",
                f"{(getattr(obj, 'kind', '') or '').lower()}/{getattr(obj, 'name', '')}",
                (ev.message or "").strip().replace("\n", " "),
            )
        )
    return table_text(("LAST SEEN", "TYPE", "REASON", "OBJECT", "MESSAGE"), rows)


def describe(obj: Any, events: list[Any] | None, events_error: str | None = None) -> str:
    """Object manifest followed by the events about it."""
    text = to_yaml(obj)
    if events_error:
        return text + f"\nEvents: <unable to list events: {events_error}>\n"
    text += "\nEvents:\n"
    text += events_table(events) if events else "  <none>\n"
    return text


# Metrics API


def _cpu_millis(quantity: str) -> int:
    return int(parse_quantity(quantity) * 1000)


def _memory_mib(quantity: str) -> int:
    return int(parse_quantity(quantity) / (1024 * 1024))


def node_usage_table(items: list[dict[str, Any]]) -> str:
    rows = []
    for item in sorted(items, key=lambda i: i["metadata"]["name"]):
        usage = item.get("usage", {})
        rows.append(
            (
                item["metadata"]["name"],
                f"{_cpu_millis(usage.get('cpu', '0'))}m",
                f"{_memory_mib(usage.get('memory', '0'))}Mi",
            )
        )
    return table_text(("NAME", "CPU(cores)", "MEMORY(bytes)"), rows)


def pod_usage_table(items: list[dict[str, Any]]) -> str:
    rows = []
    for item in sorted(items, key=lambda i: i["metadata"]["name"]):
        containers = item.get("containers", [])
        cpu = sum(_cpu_millis(c.get("usage", {}).get("cpu", "0")) for c in containers)
        mem = sum(_memory_mib(c.get("usage", {}).get("memory", "0")) for c in containers)
        rows.append((item["metadata"]["name"], f"{cpu}m", f"{mem}Mi"))
    return table_text(("NAME", "CPU(cores)", "MEMORY(bytes)"), rows)
