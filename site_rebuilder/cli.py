# === FILE: site_rebuilder/cli.py ===
#!/usr/bin/env python3
"""
Точка входа SiteRebuilder для командной строки.

Команды:
  run URL     Обойти сайт, построить промпты, сгенерировать анализ и задеплоить
  crawl URL   Только обойти сайт и сохранить снимки страниц
  deploy      Создать проект, чат и деплой из готового сообщения
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (необязательно)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только консоль, если не указан)

Дополнительно:
  --version, -v       Показать версию SiteRebuilder

Пример:
  site-rebuilder --config configs/default.yaml run https://example.com --json report.json
"""
import asyncio
import json
import re
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from site_rebuilder import __version__
from site_rebuilder.config import load_config
from site_rebuilder.engine import Engine
from site_rebuilder.errors import RebuilderError
from site_rebuilder.logger import init_logging
from site_rebuilder.report import render_json
from site_rebuilder.utils import normalize_url, slugify

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _run(coro, timeout):
    if timeout:
        return asyncio.run(asyncio.wait_for(coro, timeout=timeout))
    return asyncio.run(coro)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteRebuilder, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML или JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (только консоль, если не указан)'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file):
    """Группа команд SiteRebuilder CLI."""
    load_dotenv()
    init_logging(level=log_level, log_file=str(log_file) if log_file else None)
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('run', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.option('--skip-remote', is_flag=True, help='Не создавать проект, чат и деплой')
@click.option('--timeout', 'timeout', type=float, default=None, help='Таймаут всего запуска (секунд)')
@click.pass_context
def run(ctx, url, json_output, pretty, skip_remote, timeout):
    """Полный конвейер для URL."""
    cfg = ctx.obj['config']
    if skip_remote:
        cfg = cfg.model_copy(update={'skip_remote': True})
    try:
        report = _run(Engine(cfg).run(url), timeout)
    except RebuilderError as e:
        print_error(f'Ошибка конвейера: {e}')
    except asyncio.TimeoutError:
        print_error(f'Конвейер не завершён за {timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка конвейера: {e}')

    if json_output:
        click.echo(f'JSON report: {render_json(report, json_output, pretty=pretty)}')
    else:
        click.echo(report.json(pretty=pretty))


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--depth', '-d', type=int, default=None, help='Максимальная глубина (override max_depth)')
@click.pass_context
def crawl(ctx, url, depth):
    """Обойти сайт и сохранить HTML, текст и скриншоты страниц."""
    cfg = ctx.obj['config']
    if depth is not None:
        cfg = cfg.model_copy(update={'max_depth': depth})
    try:
        pages, crawler = _run(Engine(cfg).crawl(url), None)
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')
    click.echo(json.dumps(
        {'pages': list(pages), 'failed': [f.url for f in crawler.failures]},
        ensure_ascii=False, indent=2,
    ))


@cli.command('deploy', context_settings=CONTEXT_SETTINGS)
@click.option('--name', '-n', required=True, help='Имя проекта')
@click.option('--message', '-m', default=None, help='Текст первого сообщения чата')
@click.option(
    '--message-file', '-f', default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Файл с сообщением (UTF-8)'
)
@click.option('--site', '-s', default=None, help='URL сайта: задаёт slug и папку состояния')
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def deploy(ctx, name, message, message_file, site, pretty):
    """Создать (или продолжить) проект -> чат -> деплой из готового сообщения."""
    cfg = ctx.obj['config']
    if not message and message_file:
        message = message_file.read_text(encoding='utf-8')
    if not message:
        print_error('Нет сообщения: укажите --message или --message-file')
    try:
        slug = slugify(site) if site else re.sub(r'[^a-z0-9]', '_', name.lower())
        source = normalize_url(site) if site else None
        result = _run(Engine(cfg).deploy_locked(slug, name, message, source_url=source), None)
    except RebuilderError as e:
        print_error(f'Ошибка деплоя: {e}')
    click.echo(json.dumps(result.as_dict(), ensure_ascii=False, indent=2 if pretty else None))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON (секреты скрыты)."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
