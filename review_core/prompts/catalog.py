"""审查机器人的提示词目录。

四类请求各有固定模板：

- 单文件 diff 摘要（可追加 NEEDS_REVIEW / APPROVED 分诊指令）；
- 多个变更集摘要的去重与归并；
- 按行号区间输出的代码审查（`---` 分隔，无问题时必须回复 `LGTM!`）；
- 直接回复 diff 讨论串里的审查评论（回复以 `@user` 开头）。

派生提示词（如 short summary = 前缀 + 主体）先拼接再渲染，
这样占位符替换看到的是完整模板。
"""

from review_core.prompts.inputs import Inputs


SUMMARIZE_FILE_DIFF = """## GitHub PR Title

`$title`

## Description

```
$description
```

## Diff

```diff
$file_diff
```

## Instructions

I would like you to succinctly summarize the diff within 100 words.
If applicable, your summary should include a note about alterations
to the signatures of exported functions, global data structures and
variables, and any changes that might affect the external interface or
behavior of the code.
"""

TRIAGE_FILE_DIFF = """Below the summary, I would also like you to triage the diff as `NEEDS_REVIEW` or
`APPROVED` based on the following criteria:

- If the diff involves any modifications to the logic or functionality, even if they
  seem minor, triage it as `NEEDS_REVIEW`. This includes changes to control structures,
  function calls, or variable assignments that might impact the behavior of the code.
- If the diff only contains very minor changes that don't affect the code logic, such as
  fixing typos, formatting, or renaming variables for clarity, triage it as `APPROVED`.

Please evaluate the diff thoroughly and take into account factors such as the number of
lines changed, the potential impact on the overall system, and the likelihood of
introducing new bugs or security vulnerabilities.
When in doubt, always err on the side of caution and triage the diff as `NEEDS_REVIEW`.

You must strictly follow the format below for triaging the diff:
[TRIAGE]: <NEEDS_REVIEW or APPROVED>

Important:
- In your summary do not mention that the file needs a thorough review or caution about
  potential issues.
- Do not provide any reasoning why you triaged the diff as `NEEDS_REVIEW` or `APPROVED`.
- Do not mention that these changes affect the logic or functionality of the code in
  the summary. You must only use the triage status format above to indicate that.
"""

SUMMARIZE_CHANGESETS = """Provided below are changesets in this pull request. Changesets
are in chronological order and new changesets are appended to the
end of the list. The format consists of filename(s) and the summary
of changes for those files. There is a separator between each changeset.
Your task is to deduplicate and group together files with
related/similar changes into a single changeset. Respond with the updated
changesets using the same format as the input.

$raw_summary
"""

SUMMARIZE_PREFIX = """Here is the summary of changes you have generated for files:
      ```
      $raw_summary
      ```

"""

SUMMARIZE_SHORT = """Your task is to provide a concise summary of the changes. This
summary will be used as a prompt while reviewing each file and must be very clear for
the AI bot to understand.

Instructions:

- Focus on summarizing only the changes in the PR and stick to the facts.
- Do not provide any instructions to the bot on how to perform the review.
- Do not mention that files need a thorough review or caution about potential issues.
- Do not mention that these changes affect the logic or functionality of the code.
- The summary should not exceed 500 words.
"""

REVIEW_FILE_DIFF = """## GitHub PR Title

`$title`

## Description

```
$description
```

## Summary of changes

```
$short_summary
```

## Instructions

### Format

The format for changes provided in the example below consists of multiple change sections, each containing a new hunk (annotated with line numbers), an old hunk, and optionally, existing comment chains. Note that the old hunk code has been replaced by the new hunk. Some lines on the new hunk may be annotated with line numbers.

### Review Process

1. Perform a **meticulous line-by-line review** of new hunks, identifying substantial issues only.
2. Take into consideration the context provided by old hunks, comment threads, and file content during your review.
3. Remember, the hunk under review is a fragment of a larger codebase and may not show all relevant sections, such as definitions, imports, or usage of functions or variables.
4. Expect incomplete code fragments or references to elements defined beyond the provided context.
5. Trust the developer when they appear to utilize newer APIs and methods.
6. Presume the developer has exhaustively tested their changes and is fully aware of their system-wide implications.

### Response Format

Respond only in the below example format, consisting of review sections. Each review section must have:

1. A line number range
2. A review comment for that range
3. A separator after each review section

### Line Number Ranges

1. Line number ranges for each review section must be within the range of a specific new hunk.
2. Start line number must belong to the same hunk as the end line number.
3. Provide the **exact line number range (inclusive)** for each review comment.
4. To leave a review comment on a single line, use the same line number for start and end.

### Do's

1. Focus **solely** on offering specific, objective insights based on the actual code.
2. Use Markdown format for review comment text and fenced code blocks for code snippets.
3. If needed, suggest new code snippets using the relevant language identifier in the fenced code blocks.
4. If needed, provide a replacement snippet to fix an issue by using fenced code blocks using the `diff` as the format.
\t1. This snippet must be complete, correctly formatted & indented, and without line number annotations.
5. If there are no issues found on a line range, you **MUST** respond with the text `LGTM!` for that line range in the review section.

### Don'ts

1. Do **NOT** flag missing definitions, imports, or usages unless the context strongly suggests an issue.
2. Do **NOT** restate information readily apparent in the code or the pull request.
3. Do **NOT** provide general feedback, summaries, explanations of changes, or praises for making good additions.
4. Do **NOT** question the developer's intentions behind the changes or warn them about potential compatibility issues with other dependencies.
5. Avoid making assumptions about broader impacts beyond the given context or the necessity of the changes.
6. Do **NOT** request the developer to review their changes.

If there are no issues found on a line range, you MUST respond with the
text `LGTM!` for that line range in the review section.

Reflect on your comments thoroughly before posting them to ensure accuracy and compliance with the above guidelines.

## Example

### Example changes

---new_hunk---
```
  z = x / y
    return z

20: def add(x, y):
21:     z = x + y
22:     return z
23:
24: def multiply(x, y):
25:     return x * y

def subtract(x, y):
  z = x - y
```

---old_hunk---
```
  z = x / y
    return z

def add(x, y):
    return x + y

def subtract(x, y):
    z = x - y
```

---comment_chains---
```
Please review this change.
Line length MUST BE less than 50 characters.
All functions SHOULD begin with test_<function_name>.
```

---end_change_section---

### Example response

22-22:
There's a syntax error in the add function.
```diff
-    retrn z
+    return z
```
---
24-25:
LGTM!
---

## Changes made to `$filename` for your review

$patches
"""

COMMENT = """A comment was made on a GitHub PR review for a
diff hunk on a file - `$filename`. I would like you to follow
the instructions in that comment.

## GitHub PR Title

`$title`

## Description

```
$description
```

## Summary generated by the AI bot

```
$short_summary
```

## Entire diff

```diff
$file_diff
```

## Diff being commented on

```diff
$diff
```

## Instructions

Please reply directly to the new comment (instead of suggesting
a reply) and your reply will be posted as-is.

If the comment contains instructions/requests for you, please comply.
For example, if the comment is asking you to generate documentation
comments on the code, in your reply please generate the required code.

In your reply, please make sure to begin the reply by tagging the user
with "@user".

## Comment format

`user: comment`

## Comment chain (including the new comment)

```
$comment_chain
```

## The comment/request that you need to directly reply to

```
$comment
```
"""


class Prompts:
    """按请求类型渲染提示词。

    summarize / summarize_release_notes 的主体来自配置，其余模板固定。
    """

    def __init__(self, summarize: str = "", summarize_release_notes: str = ""):
        self.summarize = summarize
        self.summarize_release_notes = summarize_release_notes

    @classmethod
    def from_settings(cls, cfg) -> "Prompts":
        return cls(summarize=cfg.summarize, summarize_release_notes=cfg.summarize_release_notes)

    def render_summarize_file_diff(self, inputs: Inputs, review_simple_changes: bool) -> str:
        prompt = SUMMARIZE_FILE_DIFF
        if not review_simple_changes:
            prompt += TRIAGE_FILE_DIFF
        return inputs.render(prompt)

    def render_summarize_changesets(self, inputs: Inputs) -> str:
        return inputs.render(SUMMARIZE_CHANGESETS)

    def render_summarize(self, inputs: Inputs) -> str:
        return inputs.render(SUMMARIZE_PREFIX + self.summarize)

    def render_summarize_short(self, inputs: Inputs) -> str:
        return inputs.render(SUMMARIZE_PREFIX + SUMMARIZE_SHORT)

    def render_summarize_release_notes(self, inputs: Inputs) -> str:
        return inputs.render(SUMMARIZE_PREFIX + self.summarize_release_notes)

    def render_comment(self, inputs: Inputs) -> str:
        return inputs.render(COMMENT)

    def render_review_file_diff(self, inputs: Inputs) -> str:
        return inputs.render(REVIEW_FILE_DIFF)
