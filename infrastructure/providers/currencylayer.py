import httpx

from domain.exceptions.currency import CurrencyException, ProviderError
from domain.models.currency import RateSnapshot
from infrastructure.persistence.timestamps import decode_timestamp


class CurrencyLayerProvider:
	BASE_URL = 'http://api.currencylayer.com'

	def __init__(
		self,
		access_key: str,
		client: httpx.AsyncClient | None = None,
		timeout: int = 10,
		base_url: str | None = None,
	):
		self.access_key = access_key
		self.base_url = (base_url or self.BASE_URL).rstrip('/')
		self._client = client or httpx.AsyncClient(
			timeout=timeout, headers={'Cache-Control': 'no-cache'}
		)

	@property
	def name(self) -> str:
		return 'currencylayer'

	async def _request(self, endpoint: str, params: dict) -> dict:
		params['access_key'] = self.access_key
		url = f'{self.base_url}/{endpoint}'

		try:
			response = await self._client.get(url, params=params)
		except httpx.RequestError as e:
			raise ProviderError(f'CurrencyLayer request failed: {e.__class__.__name__}: {e}') from e

		try:
			data = response.json()
		except ValueError as e:
			if response.status_code >= 400:
				raise ProviderError(
					f'CurrencyLayer HTTP error {response.status_code}: {response.text[:200]}'
				) from e
			raise ProviderError(f'CurrencyLayer response parsing error: {str(e)}') from e

		if not isinstance(data, dict):
			raise ProviderError('CurrencyLayer response parsing error: expected a JSON object')

		error = data.get('error')
		if isinstance(error, dict) and 'code' in error:
			raise ProviderError(str(error.get('info', 'Unknown error')), code=int(error['code']))

		if response.status_code >= 400:
			raise ProviderError(f'CurrencyLayer HTTP error {response.status_code}: {response.text[:200]}')

		if not data.get('success', False):
			raise ProviderError('CurrencyLayer API error: Unknown error')

		return data

	async def fetch_latest(self) -> RateSnapshot:
		data = await self._request('live', {})
		try:
			return RateSnapshot.from_quotes(
				observed_at=decode_timestamp(data['timestamp']),
				basis_currency=data['source'],
				quotes=data['quotes'],
			)
		except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError, CurrencyException) as e:
			raise ProviderError(f'CurrencyLayer response parsing error: {str(e)}') from e

	async def close(self) -> None:
		await self._client.aclose()
