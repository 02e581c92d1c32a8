import argparse
import asyncio
import sys
from typing import List, Optional

from pingmonitor.client.connection import MonitorClient
from pingmonitor.client.state import ClientError, RangeStore
from pingmonitor.client.storage import RangeStorage
from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import Settings, get_settings
from pingmonitor.database import SessionLocal, engine, init_db

log = get_logger(__name__)


def build_store(settings: Settings) -> RangeStore:
    init_db(engine)
    return RangeStore(RangeStorage(SessionLocal), default_range=settings.DEFAULT_RANGE).load()


def build_client(store: RangeStore, settings: Settings, url: Optional[str] = None) -> MonitorClient:
    return MonitorClient(
        store,
        url or settings.SERVER_URL,
        delay=settings.RECONNECT_DELAY,
        max_delay=settings.RECONNECT_MAX_DELAY,
    )


async def request_when_connected(client: MonitorClient):
    """
    Espera conexión y pide un escaneo. Un fallo transitorio se reintenta
    tras `client.delay`; sin rangos configurados no hay nada que reintentar.
    """
    while True:
        await client.connected.wait()
        if not client.store.ranges:
            raise ClientError("No hay rangos configurados")
        try:
            await client.request_scan()
            return
        except ClientError as e:
            log.warning(str(e))
            await asyncio.sleep(client.delay)


async def scan_once(client: MonitorClient):
    """Conecta, escanea todos los rangos una vez y espera el resultado."""
    runner = asyncio.create_task(client.run_forever())
    try:
        while True:
            await request_when_connected(client)
            await client.idle.wait()
            if client.connected.is_set():
                return
    finally:
        client.stop()
        runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)


async def watch(client: MonitorClient, interval: float):
    """Escaneo continuo: un escaneo completo cada `interval` segundos."""
    runner = asyncio.create_task(client.run_forever())
    try:
        while True:
            await request_when_connected(client)
            await client.idle.wait()
            print(client.store.summary(), flush=True)
            await asyncio.sleep(interval)
    finally:
        client.stop()
        runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pingmonitor", description="Cliente del Network Ping Monitor")
    parser.add_argument("--url", help="URL del WebSocket del servidor (por defecto SERVER_URL)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="Muestra los rangos y su último estado")

    add = sub.add_parser("add", help="Añade un rango (Ej: 192.168.1)")
    add.add_argument("prefix")

    remove = sub.add_parser("remove", help="Elimina un rango por id")
    remove.add_argument("id", type=int)

    sub.add_parser("scan", help="Escanea todos los rangos una vez")

    w = sub.add_parser("watch", help="Escanea todos los rangos periódicamente")
    w.add_argument("--interval", type=float, default=60.0, help="Segundos entre escaneos")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    store = build_store(settings)

    if args.command == "list":
        print(store.summary())
        return 0

    if args.command == "add":
        try:
            added = store.add_range(args.prefix)
        except ValueError as e:
            print(e, file=sys.stderr)
            return 1
        if added is not None:
            print(f"Rango añadido: [{added.id}] {added.prefix}.1-255")
        return 0

    if args.command == "remove":
        if not store.remove_range(args.id):
            print(f"No existe el rango {args.id}", file=sys.stderr)
            return 1
        return 0

    if not store.ranges:
        print("No hay rangos configurados", file=sys.stderr)
        return 1

    client = build_client(store, settings, args.url)
    try:
        if args.command == "scan":
            asyncio.run(scan_once(client))
            print(store.summary())
        else:
            asyncio.run(watch(client, args.interval))
    except KeyboardInterrupt:
        log.info("Interrumpido por el usuario")
    except ClientError as e:
        print(e, file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
