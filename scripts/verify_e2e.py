#!/usr/bin/env python3
"""
Starts the API with a throwaway data directory, registers a project whose test
command sleeps and prints output, then polls the run until it finishes.
"""
import asyncio
import os
import subprocess
import sys
import tempfile
import time
from pathlib import Path

sys.path.append(os.getcwd())

from client_sdk import Poller, SpecflowClient

API_PORT = 8011
API_URL = f"http://localhost:{API_PORT}"

TEST_SCRIPT = "import time; time.sleep(3); print('3 passed, FAIL marker is just text')"


async def verify():
    with tempfile.TemporaryDirectory() as tmp:
        data_dir = Path(tmp)
        repo = data_dir / "repo"
        repo.mkdir()

        env = dict(os.environ)
        env["PROJECTS_FILE"] = str(data_dir / "projects.json")
        env["PROMPTS_FILE"] = str(data_dir / "prompts.json")

        # 1. Start Server
        print("Starting API Server...")
        proc = subprocess.Popen(
            [sys.executable, "-m", "uvicorn", "specflow.main:app", "--port", str(API_PORT)],
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        client = SpecflowClient(API_URL, timeout=5.0)
        try:
            start = time.time()
            while not await client.health():
                if time.time() - start > 10:
                    print("Failed to start API server")
                    proc.terminate()
                    _, stderr = proc.communicate()
                    print(stderr.decode())
                    sys.exit(1)
                await asyncio.sleep(0.5)
            print("API Server Ready.")

            # 2. Register project
            command = f'"{sys.executable}" -c "{TEST_SCRIPT}"'
            project = await client.create_project("e2e", str(repo), command)
            print(f"Project created: {project['id']}")

            # 3. Start run; the response must not wait for the 3s command
            t0 = time.monotonic()
            run_id = await client.start_test_run(project["id"])
            latency = time.monotonic() - t0
            print(f"Run {run_id} accepted in {latency:.3f}s")
            if latency > 1.0:
                print("FAILURE: start_test_run blocked on the command")
                sys.exit(1)

            first = await client.get_test_run(project["id"], run_id)
            print(f"Immediately after start: status={first['status']}")

            # 4. Poll every second
            result = await Poller(client, interval=1.0, timeout=30).wait_for_test_run(project["id"], run_id)
            print(f"Final status: {result['status']}")
            print(f"Output: {result['output']!r}")

            if result["status"] != "succeeded" or "3 passed" not in result["output"]:
                print("FAILURE: unexpected run result")
                sys.exit(1)
            print("SUCCESS: test run polled to completion.")
        finally:
            await client.close()
            proc.terminate()
            proc.wait()


if __name__ == "__main__":
    asyncio.run(verify())
