# === FILE: site_rebuilder/config.py ===
"""
Модуль для загрузки и валидации конфигурации SiteRebuilder.
Используется Pydantic для описания схемы и проверки данных;
переменные окружения накладываются поверх файла конфигурации.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

__all__ = ("RebuilderConfig", "load_config", "apply_env", "ENV_VARS")


class RebuilderConfig(BaseModel):
    """Конфигурация одного запуска: обход сайта, генерация и удалённые ресурсы."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    # crawl
    max_depth: int = Field(2, ge=0, description="Максимальная глубина обхода ссылок.")
    max_pages: int = Field(100, ge=1, description="Жесткий лимит по числу страниц.")
    max_selected_pages: int = Field(5, ge=1, le=10, description="Сколько страниц отбирать для промптов.")
    concurrency: int = Field(1, ge=1, le=16, description="Число параллельно открытых страниц.")
    navigation_timeout: float = Field(30.0, gt=0, description="Таймаут загрузки страницы (секунд).")
    headless: bool = Field(True, description="Запускать браузер без окна.")
    user_agent: Optional[str] = Field(None, min_length=1, description="Заголовок User-Agent браузера.")
    output_dir: Path = Field(Path("output"), description="Корневая папка для результатов.")

    # generation
    openai_api_key: Optional[SecretStr] = Field(None, description="Ключ OpenAI API.")
    openai_model: str = Field("gpt-5", min_length=1, description="Модель для генерации.")
    refine_pages: bool = Field(True, description="Уточнять анализ по вторичным страницам.")
    developer_prompt: bool = Field(True, description="Строить промпт для разработчика из анализа.")

    # remote platform
    api_base_url: str = Field("https://api.v0.dev/v1", description="Базовый URL API платформы.")
    api_key: Optional[SecretStr] = Field(None, description="Bearer-токен платформы.")
    retry_attempts: int = Field(3, ge=1, description="Число попыток при 429/5xx.")
    retry_base_ms: int = Field(300, ge=0, description="Базовая задержка backoff (мс).")
    chat_timeout: float = Field(120.0, gt=0, description="Таймаут ожидания версии чата (секунд).")
    chat_interval: float = Field(1.5, gt=0, description="Интервал опроса чата (секунд).")
    deployment_timeout: float = Field(180.0, gt=0, description="Таймаут ожидания деплоя (секунд).")
    deployment_interval: float = Field(2.0, gt=0, description="Интервал опроса деплоя (секунд).")
    assign_alias: bool = Field(True, description="Назначать поддомен-алиас после деплоя.")
    alias_domain: str = Field("vercel.app", min_length=1, description="Домен для алиасов.")
    webhook_url: Optional[str] = Field(None, description="Webhook для уведомления о новом URL.")
    skip_remote: bool = Field(False, description="Не создавать удалённые ресурсы.")

    @field_validator("api_base_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    def secret(self, name: str) -> Optional[str]:
        value = getattr(self, name)
        return value.get_secret_value() if value is not None else None


#: field name -> environment variable(s), first set one wins
ENV_VARS: Dict[str, tuple[str, ...]] = {
    "max_depth": ("MAX_CRAWL_DEPTH",),
    "max_selected_pages": ("MAX_SELECTED_PAGES",),
    "output_dir": ("OUTPUT_DIR",),
    "api_base_url": ("V0_API_BASE",),
    "api_key": ("V0_API_KEY", "VERCEL_API_KEY"),
    "openai_api_key": ("OPENAI_API_KEY",),
    "openai_model": ("OPENAI_MODEL",),
    "skip_remote": ("SKIP_REMOTE",),
    "webhook_url": ("WEBHOOK_URL",),
}


def apply_env(data: Mapping[str, Any], env: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Накладывает переменные окружения поверх значений из файла."""
    env = os.environ if env is None else env
    merged = dict(data)
    for field_name, names in ENV_VARS.items():
        for name in names:
            value = env.get(name)
            if value not in (None, ""):
                merged[field_name] = value
                break
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(
    path: Union[str, Path, None] = None,
    env: Optional[Mapping[str, str]] = None,
) -> RebuilderConfig:
    """
    Читает YAML или JSON (если задан путь), накладывает окружение и
    возвращает проверенный объект RebuilderConfig.
    Без файла используются значения по умолчанию и окружение.
    """
    data: dict[str, Any] = {}
    if path is not None:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))
        suffix = path_obj.suffix.lower()
        if suffix in (".yaml", ".yml"):
            data = _read_yaml(path_obj)
        elif suffix == ".json":
            data = _read_json(path_obj)
        else:
            raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return RebuilderConfig(**apply_env(data, env))
    except ValidationError:
        raise
