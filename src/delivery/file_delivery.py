"""
File delivery channel
"""
import json
from pathlib import Path

from core.entities import Digest
from delivery.base import DeliveryChannel


class FileDelivery(DeliveryChannel):
    name = "file"

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    async def deliver(self, *, user_id: str, digest: Digest) -> Path:
        stamp = digest.generated_at.strftime("%Y-%m-%dT%H%M%S")
        base = self.output_dir / f"digest_{user_id}_{stamp}"

        json_path = base.with_suffix(".json")
        md_path = base.with_suffix(".md")

        json_path.write_text(
            json.dumps(digest.to_dict(), indent=2),
            encoding="utf-8",
        )

        md_lines = list[str]()
        md_lines.append("# Your Bookmark Digest")
        md_lines.append(f"Generated on {digest.generated_at.date().isoformat()}")
        md_lines.append("")
        for category in digest.categories:
            md_lines.append(f"## {category.name}")
            md_lines.append("")
            for post in category.posts:
                md_lines.append(f"### {post.title} ({post.source})")
                md_lines.append(post.summary)
                md_lines.append(f"[Read more]({post.url})")
                md_lines.append("")

        md_path.write_text("\n".join(md_lines), encoding="utf-8")
        return md_path
