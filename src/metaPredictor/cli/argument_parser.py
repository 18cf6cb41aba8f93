"""
参数解析器 for metaPredictor.

Sub-commands: ``build`` (cross-validate a model family and save the run) and
``predict`` (apply a saved run to a holdout table).
"""

import argparse
from typing import List, Optional, Sequence

from metaPredictor.config.model_configs import MODEL_CONFIGS
from metaPredictor.core.base import FeatureType, SearchMethod
from metaPredictor.preprocessing.feature_filter import FILTER_METHODS
from metaPredictor.preprocessing.normalizer import NORM_METHODS


def str2bool(v):
    """将字符串转换为布尔值。"""
    if isinstance(v, bool):
        return v
    if v.lower() in ('yes', 'true', 't', 'y', '1'):
        return True
    elif v.lower() in ('no', 'false', 'f', 'n', '0'):
        return False
    else:
        raise argparse.ArgumentTypeError('Boolean value expected.')


def comma_separated_items(value: str) -> List[str]:
    """解析逗号分隔的字符串为列表。"""
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def _add_data_options(p: argparse.ArgumentParser, metadata_required: bool) -> None:
    p.add_argument('--feature_file', type=str, required=True,
                   help="特征表路径 (行=特征, 列=样本; .csv 为逗号分隔, 其他为制表符分隔)")
    p.add_argument('--metadata_file', type=str, required=metadata_required, default=None,
                   help="元数据文件路径 (行=样本)")
    p.add_argument('--label_column', type=str, required=metadata_required, default=None,
                   help="元数据中的标签列")
    p.add_argument('--case', type=str, required=False, default=None,
                   help="病例组的标签值 (二分类)")
    p.add_argument('--control', type=str, required=False, default=None,
                   help="对照组的标签值 (默认: 其余所有样本)")
    p.add_argument('--transpose', action='store_true',
                   help="特征表为 行=样本, 列=特征")
    p.add_argument('--verbose', action='store_true',
                   help="输出调试日志")


def create_argument_parser() -> argparse.ArgumentParser:
    """创建和配置CLI解析器，支持build和predict子命令。"""
    parser = argparse.ArgumentParser(
        prog='metapredictor',
        description="metaPredictor - 宏基因组表型预测模型的交叉验证构建与评估",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    # build子命令; 未给出的选项沿用配置文件或默认配置
    build_p = subparsers.add_parser('build', help='交叉验证训练、预测和评估',
                                    formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    _add_data_options(build_p, metadata_required=True)
    build_p.add_argument('--continuous', action='store_true',
                         help="标签为连续型 (回归)")
    build_p.add_argument('--output', type=str, required=False, default=None,
                         help="结果输出目录 (默认取配置中的 output_dir)")
    build_p.add_argument('--config', type=str, required=False, default=None,
                         help="YAML/JSON配置文件路径")

    build_p.add_argument('--method', type=str, required=False, default=None,
                         choices=sorted(MODEL_CONFIGS),
                         help="模型类别")
    build_p.add_argument('--measure', type=comma_separated_items, required=False, default=None,
                         help="模型选择指标 (逗号分隔, 如 auc,acc)")
    build_p.add_argument('--min_nonzero_coeff', type=int, required=False, default=None,
                         help="路径模型的最少非零系数个数")
    build_p.add_argument('--feature_type', type=str, required=False, default=None,
                         choices=[t.value for t in FeatureType],
                         help="训练使用的特征类型")
    build_p.add_argument('--search_method', type=str, required=False, default=None,
                         choices=[m.value for m in SearchMethod],
                         help="超参数搜索方法")
    build_p.add_argument('--inner_folds', type=int, required=False, default=None,
                         help="内层CV折数")

    build_p.add_argument('--num_folds', type=int, required=False, default=None,
                         help="外层CV折数")
    build_p.add_argument('--num_resample', type=int, required=False, default=None,
                         help="外层CV重复次数")
    build_p.add_argument('--stratify', type=str2bool, required=False, default=None,
                         help="分层划分 (二分类)")
    build_p.add_argument('--inseparable', type=str, required=False, default=None,
                         help="元数据中不可拆分的分组列 (如受试者ID)")

    build_p.add_argument('--filter_method', type=str, required=False, default=None,
                         choices=list(FILTER_METHODS),
                         help="无监督特征过滤方法")
    build_p.add_argument('--filter_cutoff', type=float, required=False, default=None,
                         help="特征过滤阈值")
    build_p.add_argument('--norm_method', type=str, required=False, default=None,
                         choices=list(NORM_METHODS),
                         help="归一化方法")

    build_p.add_argument('--cpu', type=int, required=False, default=None,
                         help="并行训练的进程数")
    build_p.add_argument('--seed', type=int, required=False, default=None,
                         help="随机种子")

    # predict子命令
    predict_p = subparsers.add_parser('predict', help='使用已保存的模型预测外部数据',
                                      formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    _add_data_options(predict_p, metadata_required=False)
    predict_p.add_argument('--bundle', type=str, required=True,
                           help="build输出目录或 model_bundle.joblib 路径")
    predict_p.add_argument('--output', type=str, required=False, default='./predictions',
                           help="预测结果输出目录")
    predict_p.add_argument('--normalize_holdout', type=str2bool, required=False, default=True,
                           help="使用训练时冻结的归一化参数处理外部数据")

    return parser


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """解析命令行参数。"""
    parser = create_argument_parser()
    return parser.parse_args(argv)
