from __future__ import annotations

from .control import IR_CODES, normalize_ir_code, send_ir_code
from .discovery import discover_devices
from .matcher import classify_body, extract_device_name
from .prober import check_reachability, probe
from .reconcile import refresh_devices
from .scanner import scan_range
from .verifier import VERIFY_ENDPOINTS, verify_device

__all__ = [
    "IR_CODES",
    "VERIFY_ENDPOINTS",
    "check_reachability",
    "classify_body",
    "discover_devices",
    "extract_device_name",
    "normalize_ir_code",
    "probe",
    "refresh_devices",
    "scan_range",
    "send_ir_code",
    "verify_device",
]
