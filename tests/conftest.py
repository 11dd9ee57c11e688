"""Shared fixtures: an in-memory Proxmox host driven through the command runner."""

import json
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

import pytest

from pvedsc.agent.config import ConfigManager
from pvedsc.engine.coordinator import RunCoordinator
from pvedsc.errors import CommandFailure
from pvedsc.utils.commands import CommandResult


MUTATING_VERBS = {"create", "clone", "set", "resize", "start", "shutdown", "stop"}


class FakeHypervisor:
    """Answers ``pct`` and ``qm`` commands from an in-memory table of guests."""

    def __init__(self):
        self.guests: Dict[int, dict] = {}
        self.calls: List[List[str]] = []
        self.failures: Dict[tuple, str] = {}
        self.stuck_running: set = set()
        self._mac = 0

    def add_container(self, vmid: int, status: str = "running", **config) -> dict:
        base = {
            "arch": "amd64",
            "hostname": f"ct{vmid}",
            "memory": "512",
            "cores": "1",
            "swap": "512",
            "net0": f"name=eth0,bridge=vmbr0,hwaddr={self._next_mac()},ip=dhcp,type=veth",
            "rootfs": f"local-lvm:vm-{vmid}-disk-0,size=8G",
            "ostype": "debian",
        }
        base.update({k: str(v) for k, v in config.items()})
        self.guests[vmid] = {"kind": "pct", "status": status, "config": base}
        return base

    def add_vm(self, vmid: int, status: str = "running", **config) -> dict:
        base = {
            "name": f"vm{vmid}",
            "memory": "1024",
            "cores": "1",
            "sockets": "1",
            "cpu": "x86-64-v2-AES",
            "net0": f"virtio={self._next_mac()},bridge=vmbr0",
            "scsi0": f"local-lvm:vm-{vmid}-disk-0,size=32G",
            "scsihw": "virtio-scsi-pci",
        }
        base.update({k: str(v) for k, v in config.items()})
        self.guests[vmid] = {"kind": "qm", "status": status, "config": base}
        return base

    def config(self, vmid: int) -> dict:
        return self.guests[vmid]["config"]

    def status(self, vmid: int) -> str:
        return self.guests[vmid]["status"]

    def fail(self, tool: str, verb: str, vmid: int, message: str = "simulated failure"):
        self.failures[(tool, verb, vmid)] = message

    @property
    def mutations(self) -> List[List[str]]:
        return [c for c in self.calls if len(c) > 1 and c[1] in MUTATING_VERBS]

    def _next_mac(self) -> str:
        self._mac += 1
        return "BC:24:11:00:00:%02X" % self._mac

    async def __call__(self, cmd: List[str], check: bool = True, timeout: Optional[float] = None, **kwargs):
        self.calls.append(list(cmd))
        try:
            stdout = self._dispatch(cmd)
            result = CommandResult(returncode=0, stdout=stdout)
        except _HostError as e:
            result = CommandResult(returncode=2, stderr=str(e))
        if check and result.returncode != 0:
            raise CommandFailure(cmd, result.returncode, result.stdout, result.stderr)
        return result

    def _dispatch(self, cmd: List[str]) -> str:
        tool, verb, rest = cmd[0], cmd[1], cmd[2:]
        if verb == "list":
            return self._list(tool)

        vmid = int(rest[0])
        message = self.failures.get((tool, verb, vmid))
        if message:
            raise _HostError(message)

        if verb == "create" and tool == "pct":
            return self._create(tool, vmid, rest[1], _options(rest[2:]))
        if verb == "create":
            return self._create(tool, vmid, None, _options(rest[1:]))
        if verb == "clone":
            return self._clone(vmid, int(rest[1]), _options(rest[2:]))

        guest = self.guests.get(vmid)
        if guest is None or guest["kind"] != tool:
            raise _HostError(f"Configuration file for {vmid} does not exist")

        if verb == "status":
            return f"status: {guest['status']}\n"
        if verb == "config":
            return "".join(f"{k}: {v}\n" for k, v in guest["config"].items())
        if verb == "set":
            self._set(guest, _options(rest[1:]))
        elif verb == "resize":
            device, size = rest[1], rest[2]
            volume, _, _ = guest["config"][device].partition(",")
            guest["config"][device] = f"{volume},size={size}"
        elif verb == "start":
            guest["status"] = "running"
        elif verb in ("shutdown", "stop"):
            if vmid not in self.stuck_running:
                guest["status"] = "stopped"
        else:
            raise _HostError(f"unknown command {verb}")
        return ""

    def _list(self, tool: str) -> str:
        if tool == "pct":
            lines = ["VMID       Status     Lock         Name"]
            for vmid, guest in sorted(self.guests.items()):
                if guest["kind"] == "pct":
                    lines.append(f"{vmid:<10} {guest['status']:<10}              {guest['config']['hostname']}")
        else:
            lines = ["      VMID NAME                 STATUS     MEM(MB)    BOOTDISK(GB) PID"]
            for vmid, guest in sorted(self.guests.items()):
                if guest["kind"] == "qm":
                    lines.append(
                        f"{vmid:>10} {guest['config'].get('name', ''):<20} {guest['status']:<10} "
                        f"{guest['config'].get('memory', '')}       32.00        0"
                    )
        return "\n".join(lines) + "\n"

    def _create(self, tool: str, vmid: int, template: Optional[str], options: dict) -> str:
        if vmid in self.guests:
            raise _HostError(f"unable to create: {vmid} already exists")
        if tool == "pct":
            store, _, size = options.pop("rootfs").partition(":")
            options["rootfs"] = f"{store}:vm-{vmid}-disk-0,size={size}G"
            options["net0"] = options["net0"] + f",hwaddr={self._next_mac()},type=veth"
            options["ostemplate"] = template
        else:
            image = options.pop("cdrom")
            options["ide2"] = f"{image},media=cdrom"
            store, _, size = options.pop("scsi0").partition(":")
            options["scsi0"] = f"{store}:vm-{vmid}-disk-0,size={size}G"
            options["net0"] = options["net0"].replace("virtio", f"virtio={self._next_mac()}", 1)
        self.guests[vmid] = {"kind": tool, "status": "stopped", "config": options}
        return ""

    def _clone(self, source: int, vmid: int, options: dict) -> str:
        origin = self.guests.get(source)
        if origin is None or origin["kind"] != "qm":
            raise _HostError(f"Configuration file for {source} does not exist")
        config = dict(origin["config"])
        config["name"] = options.get("name", config.get("name"))
        store = options.get("storage")
        if store:
            _, _, volume = config["scsi0"].partition(":")
            config["scsi0"] = f"{store}:{volume.replace(f'vm-{source}', f'vm-{vmid}')}"
        self.guests[vmid] = {"kind": "qm", "status": "stopped", "config": config}
        return ""

    def _set(self, guest: dict, options: dict):
        for key, value in options.items():
            if key == "sshkeys":
                value = quote(Path(value).read_text(), safe="")
            guest["config"][key] = value


class _HostError(Exception):
    pass


def _options(args: List[str]) -> dict:
    """``--key value`` pairs into a dict."""
    options = {}
    it = iter(args)
    for flag in it:
        options[flag.lstrip("-")] = next(it)
    return options


@pytest.fixture
def hypervisor():
    """In-memory host with no guests."""
    return FakeHypervisor()


@pytest.fixture
def config_file(tmp_path):
    """Config pointing the lock at a temporary path and logging to stdout only."""
    path = tmp_path / "config.yaml"
    path.write_text(f"""
manifest: {tmp_path / 'state.json'}
lock:
  path: {tmp_path / 'pvedsc.lock'}
  wait_timeout: 1
  poll_interval: 0.05
logging:
  level: DEBUG
  file: null
""")
    return path


@pytest.fixture
def write_manifest(tmp_path):
    """Write a list of entries to the manifest file."""
    def write(entries) -> Path:
        path = tmp_path / "state.json"
        path.write_text(json.dumps(entries))
        return path
    return write


@pytest.fixture
def config_manager(config_file):
    manager = ConfigManager(config_path=config_file)
    manager.load()
    return manager


@pytest.fixture
def run_engine(config_manager, hypervisor):
    """Run one reconciliation against the fake host."""
    async def run(dry_run: bool = False):
        coordinator = RunCoordinator(config_manager, dry_run=dry_run, runner=hypervisor)
        return await coordinator.run()
    return run
