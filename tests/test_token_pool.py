import os
import unittest
from unittest import mock

import token_pool


class TokenPoolTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        token_pool._credentials = None

    def tearDown(self):
        token_pool._credentials = None

    async def test_missing_credentials_raise(self):
        with mock.patch.dict(os.environ, {"SPOTIFY_CLIENT_ID": "", "SPOTIFY_CLIENT_SECRET": ""}):
            with self.assertRaises(RuntimeError):
                await token_pool.get_access_token()

    async def test_returns_token_from_spotipy_and_reuses_manager(self):
        env = {"SPOTIFY_CLIENT_ID": "id", "SPOTIFY_CLIENT_SECRET": "secret"}
        with mock.patch.dict(os.environ, env), mock.patch.object(
            token_pool.SpotifyClientCredentials, "get_access_token", return_value="app-token"
        ) as get_token:
            first = await token_pool.get_access_token()
            manager = token_pool._credentials
            second = await token_pool.get_access_token()

        self.assertEqual((first, second), ("app-token", "app-token"))
        self.assertIs(token_pool._credentials, manager)
        get_token.assert_called_with(as_dict=False)


if __name__ == "__main__":
    unittest.main()
