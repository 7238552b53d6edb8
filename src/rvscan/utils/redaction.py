from __future__ import annotations

from dataclasses import dataclass

from rvscan.models import AUTO_PREFIX, MANUAL_PREFIX


@dataclass
class Redactor:
    enabled: bool = True

    def redact_ip(self, ip: str) -> str:
        if not self.enabled:
            return ip
        parts = ip.split(".")
        if len(parts) == 4 and all(part.isdigit() for part in parts):
            return f"x.x.x.{parts[3]}"
        return ip

    def redact_id(self, device_id: str) -> str:
        # Ids embed the address: "<provenance>_<ip>_<epoch ms>".
        if not self.enabled:
            return device_id
        provenance, sep, rest = device_id.partition("_")
        ip, sep2, stamp = rest.rpartition("_")
        if provenance not in (AUTO_PREFIX, MANUAL_PREFIX) or not (sep and sep2):
            return device_id
        return f"{provenance}_{self.redact_ip(ip)}_{stamp}"

    def redact_name(self, name: str, ip: str) -> str:
        if not self.enabled:
            return name
        return name.replace(ip, self.redact_ip(ip))
