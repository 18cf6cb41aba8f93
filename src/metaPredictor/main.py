#!/usr/bin/env python3
"""
metaPredictor - 宏基因组表型预测

支持两种模式：
- build: 交叉验证训练、预测与评估
- predict: 使用已保存的模型预测外部数据
"""

import sys
from datetime import datetime
from typing import Optional, Sequence

from metaPredictor.cli.argument_parser import parse_arguments
from metaPredictor.core.exceptions import PipelineError
from metaPredictor.utils.logger import get_logger

logger = get_logger(__name__)


def _handlers():
    from metaPredictor.pipelines.build import handle_build
    from metaPredictor.pipelines.predict import handle_predict
    return {
        'build': handle_build,
        'predict': handle_predict,
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    """主入口函数，根据命令分发到相应的处理器。"""
    args = parse_arguments(argv)
    cmd = args.command
    handler = _handlers().get(cmd)
    if handler is None:
        raise ValueError(f"Unknown command: {cmd}. Supported commands: {', '.join(_handlers())}")

    start_time = datetime.now()
    logger.info(f"metaPredictor {cmd} 开始: {start_time.strftime('%Y-%m-%d %H:%M:%S')}")
    try:
        handler(args)
    except KeyboardInterrupt:
        logger.error(f"{cmd.upper()} 命令被用户中断")
        return 130
    except FileNotFoundError as e:
        logger.error(f"文件未找到: {e}")
        return 2
    except ValueError as e:
        # ConfigurationError and DataError included
        logger.error(f"参数或数据错误: {e}")
        return 3
    except PipelineError as e:
        logger.error(f"{cmd.upper()} 命令执行失败: {e}")
        return 1
    except Exception as e:
        logger.exception(f"{cmd.upper()} 命令执行失败: {e}")
        return 1

    logger.info(f"{cmd.upper()} 命令执行完成, 总耗时: {datetime.now() - start_time}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
