"""
PRThreads - one Discord thread per GitHub pull request, kept in sync by webhooks.
"""
import json
from pathlib import Path

with open(Path(__file__).parent / "info.json") as fp:
    __red_end_user_data_statement__ = json.load(fp)["end_user_data_statement"]


async def setup(bot):
    from .prthreads import PRThreads

    await bot.add_cog(PRThreads(bot))
