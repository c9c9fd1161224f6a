"""
通用记录模型

挂载配置等文档以 JSON 形式存放，按 (table_name, record_key) 唯一
"""
from tortoise import fields
from tortoise.models import Model


class Record(Model):
    """文档记录"""

    id = fields.IntField(pk=True)

    # 逻辑表名：mounts 等
    table_name = fields.CharField(max_length=64, index=True, description="逻辑表名")

    # 主键字段拼接成的记录键，格式: k=v&k=v
    record_key = fields.CharField(max_length=512, description="记录键")

    # 记录内容
    data = fields.JSONField(default=dict, description="记录内容")

    created_at = fields.DatetimeField(auto_now_add=True, description="创建时间")
    updated_at = fields.DatetimeField(auto_now=True, description="更新时间")

    class Meta:
        table = "records"
        table_description = "文档记录表"
        unique_together = (("table_name", "record_key"),)

    def __str__(self) -> str:
        return f"Record({self.table_name}: {self.record_key})"

    def to_dict(self) -> dict:
        return {
            "table_name": self.table_name,
            "record_key": self.record_key,
            "data": self.data,
            "created_at": int(self.created_at.timestamp()) if self.created_at else 0,
            "updated_at": int(self.updated_at.timestamp()) if self.updated_at else 0,
        }
