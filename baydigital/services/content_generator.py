"""AI-assisted blog, social post and caption generation."""

import re
import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import SiteDB
from baydigital.services.errors import BayDigitalError, InvalidRequestError
from baydigital.services.llm_client import LLMClient
from baydigital.services.stock_images import StockImageService

logger = structlog.get_logger(__name__)

BLOG_PROMPT = """You are a professional {tone} content writer. Write a comprehensive, SEO-optimized blog post in {language} about: "{topic}".

Requirements:
- 800-1200 words
- Include an engaging title
- Write in {tone} tone
- Create proper HTML structure with H2 and H3 headings
- Include bullet points or numbered lists where appropriate
- Make it informative and valuable
- Include a meta description (155 characters max)
- Generate a concise meta title (60 characters max)
- Extract 5-7 relevant keywords

Return ONLY a JSON object with this exact structure:
{{
  "title": "Blog Post Title",
  "meta_title": "SEO Meta Title",
  "meta_description": "SEO meta description",
  "keywords": ["keyword1", "keyword2", "keyword3"],
  "body_html": "<h2>First Section</h2><p>Content here...</p>"
}}

Do not include any text outside the JSON object."""

SOCIAL_POST_PROMPT = """You are a {tone} social media content creator. Create an engaging social media post about: "{topic}".

Requirements:
- Write 2-4 sentences (100-150 characters max - keep it SHORT and punchy)
- Include 5-7 relevant hashtags at the end
- Use {tone} tone
- Make it attention-grabbing and engaging
- Include emojis where appropriate
- Focus on value and call-to-action

Also suggest a short, punchy headline (5-7 words max) that could be overlaid on an image.

Return ONLY a JSON object with this exact structure:
{{
  "post_text": "The main post content with hashtags",
  "headline": "Short Punchy Headline",
  "image_search_query": "2-3 word search term for stock photos"
}}

Do not include any text outside the JSON object."""

CAPTION_SYSTEM_PROMPT = """You are a social media expert who creates engaging captions for posts.
Your captions should be:
- Engaging and attention-grabbing
- Appropriate for the platform ({platform})
- Include relevant emojis where appropriate
- Include a call-to-action when suitable
- Be concise but impactful
- The tone should be {tone}

Do NOT include hashtags unless specifically asked. Just provide the caption text."""


def slugify(text: str) -> str:
    """URL slug: lowercase words joined by single hyphens."""
    slug = text.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip().strip("-")


def simplify_stock_results(data: dict) -> list[dict]:
    """Reduce a Freepik search body to id/url/thumbnail triples."""
    images = []
    for item in data.get("data") or data.get("images") or []:
        source = (item.get("image") or {}).get("source") or {}
        url = item.get("url") or source.get("url")
        images.append(
            {
                "id": item.get("id"),
                "url": url,
                "thumbnail": item.get("thumbnail") or source.get("url") or url,
            }
        )
    return images


class ContentGenerator:
    """Prompts the LLM for marketing copy and shapes its replies."""

    def __init__(
        self,
        llm_client: LLMClient | None = None,
        db_session: AsyncSession | None = None,
        stock_images: StockImageService | None = None,
    ):
        """Initialize content generator.

        Args:
            llm_client: Completion client
            db_session: Database session (blog posts look up the tenant site)
            stock_images: Image search used for social post suggestions
        """
        self.llm_client = llm_client or LLMClient()
        self.db_session = db_session
        self.stock_images = stock_images

    async def generate_blog_post(
        self,
        user_id: uuid.UUID,
        topic: str,
        tone: str = "professional",
        language: str = "English",
        images: list | None = None,
        document_file: dict | None = None,
    ) -> dict:
        """Draft a blog post preview for the tenant's site.

        Args:
            user_id: Tenant requesting the post
            topic: What the post is about
            tone: Writing tone
            language: Output language
            images: Images chosen in the editor, echoed back
            document_file: Optional reference document ({"data", "mime_type"})

        Returns:
            Preview dict with title, meta fields, body_html, keywords and slug
        """
        if not topic or not topic.strip():
            raise InvalidRequestError("Topic is required")

        query = select(SiteDB).where(SiteDB.user_id == user_id).limit(1)
        result = await self.db_session.execute(query)
        site = result.scalars().first()
        if site is None:
            raise InvalidRequestError("No site found for user")

        content: list[dict] = []
        if document_file and document_file.get("data") and document_file.get("mime_type"):
            content.append(
                {
                    "type": "document",
                    "source": {
                        "type": "base64",
                        "media_type": document_file["mime_type"],
                        "data": document_file["data"],
                    },
                }
            )
            content.append(
                {
                    "type": "text",
                    "text": "Above is a reference document. Please review its content "
                    "to inform your blog post writing.",
                }
            )
        content.append(
            {
                "type": "text",
                "text": BLOG_PROMPT.format(tone=tone, language=language, topic=topic.strip()),
            }
        )

        blog = await self.llm_client.generate_json(content, max_tokens=8192)
        title = blog.get("title") or topic.strip()

        logger.info("blog_post_generated", user_id=str(user_id), site_id=str(site.id))
        return {
            "title": title,
            "meta_title": blog.get("meta_title"),
            "meta_description": blog.get("meta_description"),
            "keywords": blog.get("keywords") or [],
            "body_html": blog.get("body_html", ""),
            "slug": slugify(title),
            "images": images or [],
        }

    async def generate_social_post(
        self,
        topic: str,
        tone: str = "professional",
        custom_image: str | None = None,
    ) -> dict:
        """Write post copy and suggest up to three stock images."""
        if not topic or not topic.strip():
            raise InvalidRequestError("Topic is required")
        topic = topic.strip()

        post = await self.llm_client.generate_json(
            SOCIAL_POST_PROMPT.format(tone=tone, topic=topic),
            max_tokens=1024,
        )
        response = {
            "success": True,
            "post_text": post.get("post_text", ""),
            "headline": post.get("headline"),
            "images": [],
        }

        if custom_image:
            response["images"] = [custom_image]
            return response

        if self.stock_images is None:
            return response

        search_query = post.get("image_search_query") or " ".join(topic.split()[:3])
        try:
            results = await self.stock_images.search(search_query, page=1, limit=3)
        except BayDigitalError as exc:
            # Post copy is still useful without images
            logger.warning("social_post_image_search_failed", query=search_query, error=exc.message)
            return response

        response["images"] = simplify_stock_results(results)
        logger.info("social_post_generated", image_count=len(response["images"]))
        return response

    async def generate_caption(
        self,
        topic: str | None = None,
        platform: str | None = None,
        tone: str | None = None,
    ) -> str:
        """Plain caption text for a post."""
        system_prompt = CAPTION_SYSTEM_PROMPT.format(
            platform=platform or "Facebook/Instagram",
            tone=tone or "professional and friendly",
        )
        prompt = (
            f"Create an engaging social media caption about: {topic}"
            if topic
            else "Create a general engaging social media caption for a business post"
        )
        caption = await self.llm_client.generate(prompt, system_prompt=system_prompt, max_tokens=500)
        return caption.strip()
