from typing import Optional


class CostGenerator:
	"""Price the token usage of each model call the agent makes.

	`OpenAIResponsesClient` calls `try_estimate` after every turn or page
	analysis request and logs the total next to latency; the breakdown is
	kept on `LLMCompletion.cost`. Models without a price are logged as "n/a".

	Default prices for OPENAI_MODEL values (USD per 1,000 tokens):
	- gpt-5: 0.00125 (input), 0.01 (output)
	- gpt-5-mini: 0.00025 (input), 0.002 (output)
	- gpt-4.1: 0.002 (input), 0.008 (output)
	- gpt-4o-mini: 0.00015 (input), 0.0006 (output)

	Pass `pricing` to override them when rates change.
	"""

	DEFAULT_PRICING = {
		"gpt-5": {"input_per_1k": 0.00125, "output_per_1k": 0.01},
		"gpt-5-mini": {"input_per_1k": 0.00025, "output_per_1k": 0.002},
		"gpt-4.1": {"input_per_1k": 0.002, "output_per_1k": 0.008},
		"gpt-4o-mini": {"input_per_1k": 0.00015, "output_per_1k": 0.0006},
	}

	def __init__(self, pricing: dict | None = None):
		"""Create a CostGenerator.

		Args:
			pricing: Optional mapping of model -> {"input_per_1k": float, "output_per_1k": float}.
				When omitted, `DEFAULT_PRICING` will be used.
		"""
		self.pricing = pricing or dict(self.DEFAULT_PRICING)

	def supports(self, model: str) -> bool:
		return model.lower() in self.pricing

	def estimate(self, input_tokens: int, output_tokens: int, model: str) -> dict:
		"""Estimate cost for a single API call.

		Returns:
			A dictionary with breakdown: input_tokens, output_tokens, model,
			input_cost, output_cost, total_cost.

		Raises:
			ValueError: If tokens are negative or model is not supported.
		"""
		if input_tokens < 0 or output_tokens < 0:
			raise ValueError("Token counts must be non-negative integers.")

		model = model.lower()
		if model not in self.pricing:
			raise ValueError(f"Unsupported model '{model}'. Supported: {', '.join(self.pricing.keys())}")

		rates = self.pricing[model]
		input_cost = (input_tokens / 1000.0) * rates["input_per_1k"]
		output_cost = (output_tokens / 1000.0) * rates["output_per_1k"]

		return {
			"model": model,
			"input_tokens": int(input_tokens),
			"output_tokens": int(output_tokens),
			"input_cost": round(input_cost, 8),
			"output_cost": round(output_cost, 8),
			"total_cost": round(input_cost + output_cost, 8),
		}

	def try_estimate(self, usage: dict, model: str) -> Optional[dict]:
		"""Estimate from a usage dict; None when tokens are missing or the model is unpriced."""
		input_tokens = usage.get("input_tokens")
		output_tokens = usage.get("output_tokens")
		if input_tokens is None or output_tokens is None or not self.supports(model):
			return None
		return self.estimate(input_tokens, output_tokens, model)
