"""Configuration loading, writing, and default file generation.

Reads TOML config files using stdlib ``tomllib`` and writes them using
``tomli_w``.  Depends only on ``models.py`` and the categorizer's rule
builder.  Sections missing from a user file fall back to the defaults.
"""

from __future__ import annotations

import sys
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

from statement_analyzer.categorizer import build_rules
from statement_analyzer.errors import ConfigError
from statement_analyzer.models import AnalysisConfig, AppConfig, CategoryRule

# ---------------------------------------------------------------------------
# Default category rules, in evaluation order
# ---------------------------------------------------------------------------

DEFAULT_CATEGORIES: list[tuple[str, list[str]]] = [
    ("Food", [
        "restaurante", "lanchonete", "padaria", "ifood", "restaurant", "uber eats",
        "rappi", "mcdonalds", "burger king", "pizza", "açai", "acai", "cafe", "café",
        "bar", "pub", "subway", "kfc", "outback", "sushi", "japonês",
    ]),
    ("Transport", [
        "uber", "99", "taxi", "metrô", "metro", "onibus", "ônibus", "bus", "passagem",
        "combustivel", "combustível", "gasolina", "gas", "posto", "ipiranga", "shell",
        "br petrobras", "estacionamento", "pedágio", "pedagio", "parking", "toll",
    ]),
    ("Subscriptions", [
        "spotify", "netflix", "amazon prime", "disney", "hbo", "youtube premium",
        "apple music", "deezer", "globoplay", "paramount", "crunchyroll", "prime video",
        "star+", "max", "telegram premium", "chatgpt", "github", "subscription",
    ]),
    ("Supermarket", [
        "carrefour", "pão de açucar", "pao de acucar", "extra", "walmart", "mercado",
        "supermercado", "atacadão", "atacadao", "zaffari", "dia%", "sam's club", "assai",
        "big box", "nacional", "bompreco", "market", "grocery",
    ]),
    ("Health", [
        "drogaria", "farmacia", "farmácia", "clinica", "clínica", "pharmacy", "hospital",
        "laboratorio", "laboratório", "consulta", "health", "drogasil", "pacheco",
        "ultrafarma", "pague menos", "droga raia", "medico", "médico", "dentist",
        "dentista", "exame", "doctor",
    ]),
    ("Education", [
        "curso", "livro", "livraria", "udemy", "coursera", "course", "faculdade", "escola",
        "universidade", "material escolar", "education", "alura", "pluralsight",
        "linkedin learning", "domestika", "school", "university",
    ]),
    ("Entertainment", [
        "cinema", "teatro", "show", "ingresso", "parque", "entertainment", "viagem",
        "hotel", "airbnb", "booking", "decolar", "travel", "cinemark", "uci", "kinoplex",
        "evento", "event", "movie",
    ]),
    ("Online Shopping", [
        "amazon", "mercado livre", "americanas", "magazine luiza", "shopee", "aliexpress",
        "shein", "kabum", "pichau", "submarino", "casas bahia", "ponto frio", "shopping",
    ]),
    ("Utilities", [
        "internet", "telefone", "celular", "luz", "energia", "phone", "água", "agua",
        "condominio", "condomínio", "aluguel", "water", "vivo", "claro", "tim", "oi",
        "copel", "cemig", "eletropaulo", "utilities",
    ]),
    ("Investments", [
        "corretora", "btg", "xp", "clear", "rico", "investment", "nuinvest", "easynvest",
        "inter invest", "tesouro", "cdb", "fundo", "ação", "stock", "fund",
    ]),
    ("Transfers", [
        "pix", "transferencia", "transferência", "ted", "doc", "envio", "pagamento",
        "qr code", "transfer", "payment",
    ]),
    ("Pet", [
        "pet", "veterinari", "ração", "racao", "petz", "cobasi", "petshop", "pet shop",
        "animal", "veterinary",
    ]),
    ("Home", [
        "mobilia", "móvel", "decoração", "decoracao", "leroy", "furniture", "tok stok",
        "etna", "home center", "construção", "construcao", "home",
    ]),
    ("Clothing", [
        "roupa", "calça", "camisa", "sapato", "tênis", "tenis", "clothes", "zara", "renner",
        "c&a", "riachuelo", "nike", "adidas", "fashion", "moda", "clothing",
    ]),
]

REPORT_FORMATS = ("txt", "json", "toml", "csv", "html")
LOG_LEVELS = ("debug", "info", "warning", "error")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def default_config() -> AppConfig:
    """Return the built-in configuration."""
    return AppConfig(categories=build_rules(DEFAULT_CATEGORIES))


def load_config(path: Path) -> AppConfig:
    """Load a TOML config file and merge it over the defaults.

    A ``[[categories]]`` array in the file replaces the default rule list
    entirely; other sections override the defaults key by key.

    Args:
        path: Path to the config file.

    Returns:
        A fully-populated :class:`AppConfig` instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid TOML or has invalid values.
    """
    try:
        data = _read_toml(Path(path))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: invalid TOML: {exc}") from exc
    return config_from_dict(data)


def config_from_dict(data: dict[str, Any]) -> AppConfig:
    """Build an :class:`AppConfig` from parsed TOML data.

    Raises:
        ConfigError: On an unknown key, a value of the wrong type, or a
            value out of range.
    """
    defaults = default_config()
    parser = _table(data, "parser")
    analysis = _table(data, "analysis")
    report = _table(data, "report")
    logging_section = _table(data, "logging")

    if "categories" in data:
        categories = _parse_categories(data["categories"])
    else:
        categories = defaults.categories

    config = AppConfig(
        categories=categories,
        date_formats=_parse_date_formats(parser.get("date_formats", defaults.date_formats)),
        encoding=_string(parser, "parser", "encoding", defaults.encoding),
        analysis=_parse_analysis(analysis, defaults.analysis),
        default_format=_string(report, "report", "default_format", defaults.default_format),
        log_level=_string(logging_section, "logging", "level", defaults.log_level),
        log_file=_string(logging_section, "logging", "file", defaults.log_file),
    )
    validate_config(config)
    return config


def config_to_dict(config: AppConfig) -> dict[str, Any]:
    """Convert *config* to the TOML document structure."""
    return {
        "parser": {"date_formats": list(config.date_formats), "encoding": config.encoding},
        "analysis": asdict(config.analysis),
        "report": {"default_format": config.default_format},
        "logging": {"level": config.log_level, "file": config.log_file},
        "categories": [
            {"name": rule.name, "keywords": list(rule.keywords)} for rule in config.categories
        ],
    }


def save_config(config: AppConfig, path: Path) -> None:
    """Write *config* to *path* as TOML, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "# Statement Analyzer configuration\n\n" + tomli_w.dumps(config_to_dict(config))
    path.write_text(text, encoding="utf-8")


def write_default_config(path: Path) -> bool:
    """Write the default configuration to *path* unless it already exists.

    Returns:
        True if the file was written, False if it already existed.
    """
    path = Path(path)
    if path.exists():
        return False
    save_config(default_config(), path)
    return True


def validate_config(config: AppConfig) -> None:
    """Check value ranges that the type system does not.

    Raises:
        ConfigError: On the first invalid value found.
    """
    if not config.date_formats:
        raise ConfigError("[parser] date_formats must not be empty")
    if config.default_format not in REPORT_FORMATS:
        raise ConfigError(
            f"[report] default_format must be one of: {', '.join(REPORT_FORMATS)}"
        )
    if config.log_level.lower() not in LOG_LEVELS:
        raise ConfigError(f"[logging] level must be one of: {', '.join(LOG_LEVELS)}")
    analysis = config.analysis
    if analysis.outlier_threshold < 0:
        raise ConfigError("[analysis] outlier_threshold must not be negative")
    if analysis.min_occurrences < 1:
        raise ConfigError("[analysis] min_occurrences must be at least 1")
    if analysis.top_expenses < 1 or analysis.merchant_limit < 1:
        raise ConfigError("[analysis] top_expenses and merchant_limit must be at least 1")
    if analysis.duplicate_prefix_length < 1:
        raise ConfigError("[analysis] duplicate_prefix_length must be at least 1")
    if analysis.trend_threshold < 0:
        raise ConfigError("[analysis] trend_threshold must not be negative")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> dict:
    """Read and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _parse_categories(entries: Any) -> list[CategoryRule]:
    """Parse the ``[[categories]]`` array of tables, preserving order."""
    if not isinstance(entries, list):
        raise ConfigError("categories must be an array of tables ([[categories]])")
    pairs = []
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise ConfigError("each [[categories]] entry needs a name")
        keywords = entry.get("keywords", [])
        if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
            raise ConfigError(
                f"category {entry['name']!r}: keywords must be an array of strings"
            )
        pairs.append((entry["name"], keywords))
    return build_rules(pairs)


def _table(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return the ``[name]`` section, or an empty dict when absent."""
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _string(section: dict[str, Any], table: str, key: str, default: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"[{table}] {key} must be a string")
    return value


def _parse_date_formats(value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(p, str) and p for p in value):
        raise ConfigError("[parser] date_formats must be an array of non-empty strings")
    return list(value)


def _parse_analysis(section: dict[str, Any], defaults: AnalysisConfig) -> AnalysisConfig:
    """Merge the ``[analysis]`` section over *defaults*, checking each type.

    Float fields accept integers; bools are never accepted as numbers.
    """
    types = {f.name: type(getattr(defaults, f.name)) for f in fields(AnalysisConfig)}
    unknown = sorted(set(section) - set(types))
    if unknown:
        raise ConfigError(f"unknown [analysis] key(s): {', '.join(unknown)}")

    values = asdict(defaults)
    for key, value in section.items():
        expected = types[key]
        if expected is bool:
            ok, kind = isinstance(value, bool), "a boolean"
        elif expected is float:
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            kind = "a number"
        else:
            ok = isinstance(value, int) and not isinstance(value, bool)
            kind = "an integer"
        if not ok:
            raise ConfigError(f"[analysis] {key} must be {kind}")
        values[key] = float(value) if expected is float else value
    return AnalysisConfig(**values)
