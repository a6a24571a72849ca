"""jsonrest 命令行工具."""

import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel
from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text
from rich.tree import Tree

from .api import loads
from .converter import has_catch_all
from .log import logger
from .options import RestOption
from .schema import resolve_catch_all_field


class _ClickEchoHandler(logging.Handler):
    """将库日志通过 click.echo 输出到 stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        click.echo(f"[DEBUG] {self.format(record)}", err=True)


def _enable_debug_log() -> None:
    if not any(isinstance(h, _ClickEchoHandler) for h in logger.handlers):
        logger.addHandler(_ClickEchoHandler())
    logger.setLevel(logging.DEBUG)


def _import_model(spec: str) -> type[BaseModel]:
    """按 `package.module:ClassName` 导入目标模型.

    Raises:
        click.BadParameter: 格式错误, 导入失败或目标不是 Pydantic 模型.
    """
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise click.BadParameter(
            f"格式应为 package.module:ClassName, 实际为 {spec!r}",
            param_hint="MODEL",
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(
            f"无法导入模块 {module_name!r}: {e}", param_hint="MODEL"
        ) from e

    target: Any = module
    for part in attr.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise click.BadParameter(
                f"模块 {module_name!r} 中不存在 {attr!r}", param_hint="MODEL"
            )

    if not (isinstance(target, type) and issubclass(target, BaseModel)):
        raise click.BadParameter(
            f"{spec!r} 不是 Pydantic 模型类", param_hint="MODEL"
        )
    return target


def _split_fields(obj: BaseModel) -> tuple[dict[str, Any], dict[str, Any]]:
    """将模型实例拆分为 (已知字段, 扩展属性)."""
    model = type(obj)
    catch_all_name = None
    if has_catch_all(model):
        catch_all_name = resolve_catch_all_field(model).name

    fields: dict[str, Any] = {}
    extensions: dict[str, Any] = {}
    for name in model.model_fields:
        value = getattr(obj, name)
        if name == catch_all_name:
            extensions = dict(value)
        else:
            fields[name] = value
    return fields, extensions


def _to_plain(obj: Any) -> Any:
    """将解码结果转换为可 JSON 序列化的普通对象."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    return obj


def _add_value(tree: Tree, label: str, value: Any, style: str) -> None:
    """向树中添加一个 `键: 值` 节点, 嵌套的模型/字典/列表展开为分支."""
    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, dict):
        branch = tree.add(Text(label, style=style))
        for k, v in value.items():
            _add_value(branch, str(k), v, "bold blue")
        return

    if isinstance(value, list | tuple):
        branch = tree.add(Text(f"{label} ({len(value)})", style=style))
        for i, v in enumerate(value):
            _add_value(branch, f"[{i}]", v, "dim")
        return

    node = Text()
    node.append(f"{label}: ", style=style)
    node.append(repr(value), style="green" if isinstance(value, str) else "magenta")
    tree.add(node)


def _build_rich_tree(result: Any) -> Tree:
    """构建解码结果的 Rich 树.

    模型实例分为 Fields (已知字段) 和 Extensions (扩展属性) 两个分支.
    """
    if not isinstance(result, BaseModel):
        root = Tree("Value", style="bold white")
        _add_value(root, "value", result, "cyan")
        return root

    fields, extensions = _split_fields(result)
    root = Tree(type(result).__name__, style="bold white")

    fields_branch = root.add(Text("Fields", style="bold yellow"))
    for name, value in fields.items():
        _add_value(fields_branch, name, value, "cyan")

    ext_branch = root.add(
        Text(f"Extensions ({len(extensions)})", style="bold yellow")
    )
    for key, value in extensions.items():
        _add_value(ext_branch, key, value, "bold blue")
    return root


def _print_tree(result: Any, file: Any = None) -> None:
    """打印解码结果树 (使用 Rich).

    Args:
        result: 解码结果.
        file: 输出文件对象, 默认为 stdout.
    """
    console = Console(file=file, force_terminal=False if file else None)
    console.print(_build_rich_tree(result))


def _decode_and_print(
    text: str,
    target: type[BaseModel],
    option: RestOption,
    output_format: str,
    output_file: Path | None,
    verbose: bool,
) -> None:
    """解码并输出结果."""
    if verbose:
        click.echo(f"[DEBUG] 数据大小: {len(text)} 字符", err=True)
        click.echo(f"[DEBUG] 目标模型: {target.__module__}.{target.__name__}", err=True)

    try:
        result = loads(text, target=target, option=option)
    except Exception as e:
        if verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        raise click.ClickException(f"解码失败: {e}") from e

    if output_format == "tree":
        if output_file:
            with open(output_file, "w", encoding="utf-8") as f:
                _print_tree(result, file=f)
            click.echo(f"结果已保存到: {output_file}", err=True)
        else:
            _print_tree(result)
        return

    output_text: str | None = None
    if output_format == "json":
        output_text = json.dumps(_to_plain(result), indent=2, ensure_ascii=False)
    elif output_file:
        import pprint

        output_text = pprint.pformat(result, width=100)

    if output_file:
        assert output_text is not None
        output_file.write_text(output_text, encoding="utf-8")
        click.echo(f"结果已保存到: {output_file}", err=True)
        return

    console = Console()
    if output_format == "json":
        assert output_text is not None
        console.print(Syntax(output_text, "json", theme="monokai", word_wrap=True))
    else:  # pretty
        console.print(result)


@click.command(help="JSON 扩展属性解码命令行工具")
@click.argument("model")
@click.argument("data", required=False)
@click.option(
    "-f",
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="从文件读取 JSON 数据",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["pretty", "json", "tree"]),
    default="pretty",
    show_default=True,
    help="输出格式",
)
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="将输出保存到文件 (如不指定则输出到控制台)",
)
@click.option("--strict", is_flag=True, help="已知字段使用严格模式验证")
@click.option("--raw-text", is_flag=True, help="扩展属性保留输入中的原始文本")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="显示详细的解码过程信息",
)
def cli(
    model: str,
    data: str | None,
    file_path: Path | None,
    output_format: str,
    output_file: Path | None,
    strict: bool,
    raw_text: bool,
    verbose: bool,
) -> None:
    """JSON 扩展属性解码命令行工具.

    Examples:
      # 直接解码 JSON 文本
      jsonrest myapp.models:Pet '{"name": "Rex", "color": "brown"}'

      # 从文件读取
      jsonrest myapp.models:Pet -f pet.json

      # 以 Tree 格式输出, 区分已知字段和扩展属性
      jsonrest myapp.models:Pet -f pet.json --format tree
    """
    # 互斥参数检查
    if data and file_path:
        raise click.UsageError("不能同时指定 DATA 数据和 --file 参数")
    if not data and not file_path:
        raise click.UsageError("必须指定 DATA 数据或 --file 参数")

    if verbose:
        _enable_debug_log()

    target = _import_model(model)

    option = RestOption.NONE
    if strict:
        option |= RestOption.STRICT
    if raw_text:
        option |= RestOption.RAW_TEXT

    if file_path:
        try:
            text = file_path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as e:
            raise click.ClickException(f"文件不是有效的 UTF-8 文本: {e}") from e
        if verbose:
            click.echo(f"[DEBUG] 从文件读取: {file_path}", err=True)
    else:
        assert data is not None
        text = data

    _decode_and_print(text, target, option, output_format, output_file, verbose)


def main() -> None:
    """入口函数."""
    cli()


if __name__ == "__main__":
    main()
