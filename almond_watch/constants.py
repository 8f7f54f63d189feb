USER_AGENT = "AlmondWatch-Bot/1.0 (+https://precioalmendra.com; compatible; price tracker)"

ACCEPT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "es-ES,es;q=0.9",
}

DEFAULT_SOURCE_NAME = "SynergyNuts UPCT"

MARKET_IDS = ("albacete", "murcia", "reus", "cordoba")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_DATA = 3
EXIT_INTERRUPTED = 130
