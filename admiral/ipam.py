"""IPv4 address pool that hands out single addresses and contiguous blocks."""

from __future__ import annotations

import ipaddress
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable

from sortedcontainers import SortedDict

_IPV4_MASK = 0xFFFFFFFF


class MetricsReporter(ABC):
    """Receives pool usage figures."""

    @abstractmethod
    def record_availability(self, cidr: str, count: int) -> None:
        """The pool for ``cidr`` has ``count`` addresses available."""

    @abstractmethod
    def record_ips_allocated(self, cidr: str, count: int) -> None:
        """``count`` addresses were taken from the pool for ``cidr``."""

    @abstractmethod
    def record_ip_deallocated(self, cidr: str) -> None:
        """One address was returned to the pool for ``cidr``."""


@dataclass
class MetricsReporterFuncs(MetricsReporter):
    """Metrics reporter built from optional callbacks; missing ones are ignored."""

    record_availability_func: Callable[[str, int], None] | None = None
    record_ips_allocated_func: Callable[[str, int], None] | None = None
    record_ip_deallocated_func: Callable[[str], None] | None = None

    def record_availability(self, cidr, count):
        if self.record_availability_func is not None:
            self.record_availability_func(cidr, count)

    def record_ips_allocated(self, cidr, count):
        if self.record_ips_allocated_func is not None:
            self.record_ips_allocated_func(cidr, count)

    def record_ip_deallocated(self, cidr):
        if self.record_ip_deallocated_func is not None:
            self.record_ip_deallocated_func(cidr)


def string_ip_to_int(ip: str) -> int:
    """The low 32 bits of an IP address as an integer."""
    return int(ipaddress.ip_address(ip)) & _IPV4_MASK


def _parse_cidr(cidr: str) -> ipaddress.IPv4Network:
    if "/" not in cidr:
        raise ValueError(f"error parsing CIDR {cidr!r}: invalid CIDR address")
    try:
        network = ipaddress.ip_network(cidr, strict=False)
    except ValueError as exc:
        raise ValueError(f"error parsing CIDR {cidr!r}: {exc}") from exc
    if network.version != 4:
        raise ValueError(f"error parsing CIDR {cidr!r}: only IPv4 networks are supported")
    return network


class IPPool:
    """Pool of the host addresses of an IPv4 CIDR, excluding network and broadcast."""

    def __init__(self, cidr: str, metrics: MetricsReporter | None = None) -> None:
        network = _parse_cidr(cidr)
        total = network.num_addresses
        if total < 4:
            raise ValueError(f"invalid prefix for CIDR {cidr!r}")

        self._cidr = cidr
        self._network = network
        self._metrics: MetricsReporter = metrics if metrics is not None else MetricsReporterFuncs()
        self._lock = threading.Lock()

        start = int(network.network_address) + 1
        host_count = total - 2
        self._available: SortedDict = SortedDict(
            (value, str(ipaddress.IPv4Address(value))) for value in range(start, start + host_count)
        )
        self._metrics.record_availability(cidr, host_count)

    def _contains(self, ip: str) -> bool:
        try:
            address = ipaddress.ip_address(ip)
        except ValueError:
            return False
        if address.version == 6:
            address = address.ipv4_mapped
            if address is None:
                return False
        return address in self._network

    def _allocate_one(self) -> list[str]:
        with self._lock:
            if not self._available:
                raise ValueError("insufficient IPs available for allocation")
            _, ip = self._available.popitem()
            self._metrics.record_ips_allocated(self._cidr, 1)
            return [ip]

    def allocate(self, num: int) -> list[str]:
        """Take ``num`` contiguous addresses from the pool.

        A single address is taken from the top of the pool; a block is the lowest
        contiguous run that is long enough.
        """
        if num < 0:
            raise ValueError("the number to allocate cannot be negative")
        if num == 0:
            return []
        if num == 1:
            return self._allocate_one()

        with self._lock:
            available = len(self._available)
            if available < num:
                raise ValueError(f"insufficient IPs available ({available}) to allocate {num}")

            run: list[int] = []
            for key in self._available:
                if run and run[-1] + 1 == key:
                    run.append(key)
                else:
                    run = [key]
                if len(run) == num:
                    break
            else:
                raise ValueError(
                    f"unable to allocate a contiguous block of {num} IPs - "
                    f"available pool size is {available}")

            allocated = [self._available.pop(key) for key in run]
            self._metrics.record_ips_allocated(self._cidr, num)
            return allocated

    def release(self, *ips: str) -> None:
        """Return addresses to the pool; raise ValueError for one outside the CIDR."""
        with self._lock:
            for ip in ips:
                if not self._contains(ip):
                    raise ValueError(f"released IP {ip} is not contained in CIDR {self._cidr}")
                self._available[string_ip_to_int(ip)] = ip
                self._metrics.record_ip_deallocated(self._cidr)

    def reserve(self, *ips: str) -> None:
        """Take specific addresses from the pool, all or none."""
        if not ips:
            return

        with self._lock:
            keys: list[int] = []
            for ip in ips:
                key = string_ip_to_int(ip)
                if key not in self._available:
                    if not self._contains(ip):
                        raise ValueError(
                            f"the requested IP {ip} is not contained in CIDR {self._cidr}")
                    raise ValueError(f"the requested IP {ip} is already allocated")
                keys.append(key)

            for key in keys:
                self._available.pop(key, None)

            self._metrics.record_ips_allocated(self._cidr, len(ips))

    def size(self) -> int:
        """Number of addresses currently available."""
        with self._lock:
            return len(self._available)

    def cidr(self) -> str:
        return self._cidr

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return f"IPPool({self._cidr!r}, available={self.size()})"


def _all_in(pool: IPPool, ips: Iterable[str]) -> bool:
    return all(pool._contains(ip) for ip in ips)