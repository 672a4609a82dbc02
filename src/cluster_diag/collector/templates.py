"""Text templates for the run summary and console report."""

SUMMARY_HEADER = """Cluster Diagnostics Summary
========================================
Timestamp: {timestamp}
Namespace: {namespace}
Output Directory: {output_path}

Configuration:
  LOG_TAIL: {log_tail}
  EVENTS_TAIL: {events_tail}
  AWS_REGION: {aws_region}
  LB_ANNOTATION: {lb_annotation}
"""

CAPTURED_CATEGORIES = [
    "Pod list and descriptions",
    "Pod logs (current and previous if restarted)",
    "Kubernetes events",
    "Ingress resources and details",
    "Services and endpoints",
    "Node information",
    "Resource usage (if metrics API available)",
    "Persistent Volume Claims",
    "StatefulSets and Deployments",
]

LB_CATEGORY = "ALB target group health (if available)"

REPORT_DONE = """
**Diagnostics capture complete.**

- Captures attempted: {attempted}
- Failed: {failed}
- Summary: `{manifest}`

All diagnostic files are in `{output_path}`.
"""
