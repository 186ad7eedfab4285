"""候选查询生成。

不依赖固定语法：枚举输入的每一个切分点，由评分阶段判断哪一段是实体名、
哪一段是变更表达式。
"""

from command_resolver.models import Query
from command_resolver.text import tokenize


def parse_query(text: str) -> list[Query]:
    """将输入文本切分为候选查询。

    对 n 个 token，每个切分点 i ∈ [0, n] 产生两个候选：
    tokens[:i] 作为名称、tokens[i:] 作为变更，以及二者互换。

    Args:
        text: 用户输入

    Returns:
        2 * (n + 1) 个候选查询；空输入返回空列表
    """
    tokens = tokenize(text)
    if not tokens:
        return []

    queries: list[Query] = []
    for split in range(len(tokens) + 1):
        head = " ".join(tokens[:split])
        tail = " ".join(tokens[split:])
        queries.append(Query(name=head, change=tail, split=split, name_first=True))
        queries.append(Query(name=tail, change=head, split=split, name_first=False))

    return queries
