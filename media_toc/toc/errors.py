class TocError(ValueError):
    """目录规范化相关错误的基类"""


class TocContractError(TocError):
    """
    调用方违反输入约定 (重复的 SeriesMeta、SeriesMeta 不在首位、未知条目类型)。

    这是上游的编程错误，而不是抓取内容的问题，因此需要抛出。
    """


class TocIndexError(TocError):
    """生成了非法索引，只可能是内部缺陷"""
