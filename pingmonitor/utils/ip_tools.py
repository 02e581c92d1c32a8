import ipaddress
import re

# Un rango es siempre un bloque /24: 3 octetos + hosts .1 a .255
HOSTS_PER_RANGE = 255

# Solo dígitos ASCII: str.isdigit() también acepta "١" o "²"
OCTET_PATTERN = re.compile(r"[0-9]{1,3}")


#Normaliza el prefijo
def normalize_prefix(prefix: str) -> str:
    """
    Normaliza un prefijo de rango:
    - elimina espacios y el punto final ("10.0.0." → "10.0.0")
    - exige exactamente 3 octetos decimales 0-255
    - elimina ceros a la izquierda ("010.0.1" → "10.0.1")
    """
    if not isinstance(prefix, str):
        raise ValueError(f"Prefijo inválido: {prefix!r}")

    value = prefix.strip().rstrip(".")
    parts = value.split(".")

    if len(parts) != 3 or not all(OCTET_PATTERN.fullmatch(p) for p in parts):
        raise ValueError(f"Prefijo inválido: {prefix!r}")

    octets = [int(p) for p in parts]
    if any(o > 255 for o in octets):
        raise ValueError(f"Prefijo inválido: {prefix!r}")

    # ipaddress hace la validación final del resultado
    network = ipaddress.IPv4Network(f"{'.'.join(map(str, octets))}.0/24")
    return str(network.network_address).rsplit(".", 1)[0]


# Dirección de un host dentro del rango
def host_address(prefix: str, host: int) -> str:
    """
    Construye "{prefix}.{host}" para host 1..255.
    """
    if not 1 <= host <= HOSTS_PER_RANGE:
        raise ValueError(f"Host fuera de rango: {host}")
    return f"{prefix}.{host}"


# CONVERTIR PREFIJO en LISTA DE IPs
def host_addresses(prefix: str) -> list[str]:
    """
    Devuelve las 255 direcciones del rango:
        "10.0.0" → ["10.0.0.1", ..., "10.0.0.255"]
    """
    return [host_address(prefix, n) for n in range(1, HOSTS_PER_RANGE + 1)]
