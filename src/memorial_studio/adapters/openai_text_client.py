"""OpenAI Responses API client for text generation."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from memorial_studio.services.obituary import TextGenerationClient


@dataclass
class OpenAITextClient(TextGenerationClient):
    """Text generation client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAITextClient":
        """Create an OpenAI text client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def generate(
        self, *, model: str, instructions: str, prompt: str, store: bool
    ) -> str:
        """Call OpenAI Responses API and return the output text."""
        response = await self.client.responses.create(
            model=model,
            instructions=instructions,
            input=prompt,
            max_output_tokens=1000,
            temperature=0.7,
            store=store,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
