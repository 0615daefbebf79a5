"""JS shipped into the target document by the page runtime."""

from __future__ import annotations

import json

from .locators import INDEX_CLOSE, INDEX_OPEN, PATH_EXPRESSION_PATTERN, SEGMENT_SEPARATOR

SESSION_GLOBAL = "__pageBridgeSession"
SESSION_VERSION = 1
REGISTRY_LIMIT = 50
INPUT_EVENT_SEQUENCE = ("focus", "keydown", "keypress", "keyup", "input", "change", "blur")
CLICK_GUARD_STYLE = (
    "width: 100%; height: 100%; position: fixed; top: 0; left: 0; "
    "cursor: not-allowed; z-index: 12500;"
)

_PAGE_RUNTIME_TEMPLATE = r"""async (message) => {
  const SEGMENT_SEPARATOR = __SEGMENT_SEPARATOR__;
  const INDEX_OPEN = __INDEX_OPEN__;
  const INDEX_CLOSE = __INDEX_CLOSE__;
  const REGISTRY_LIMIT = __REGISTRY_LIMIT__;
  const INPUT_EVENT_SEQUENCE = __INPUT_EVENT_SEQUENCE__;
  const PATH_EXPRESSION = new RegExp(__PATH_EXPRESSION__);

  class ElementMissing extends Error {}

  const session = (() => {
    const existing = globalThis[__SESSION_GLOBAL__];
    if (existing && existing.version === __SESSION_VERSION__) return existing;
    const created = {
      version: __SESSION_VERSION__,
      registry: new Map(),
      files: null,
      catcher: null,
      clickGuard: null
    };
    globalThis[__SESSION_GLOBAL__] = created;
    return created;
  })();

  const isPathExpression = (locator) => PATH_EXPRESSION.test(locator);

  const resolve = (locator, contextNode, index) => {
    const root = contextNode || document;
    if (isPathExpression(locator)) {
      if (index === -1) {
        return document.evaluate(
          locator, root, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null
        ).singleNodeValue;
      }
      return document.evaluate(
        locator, root, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null
      ).snapshotItem(index);
    }
    if (index === -1) return root.querySelector(locator);
    return root.querySelectorAll(locator)[index] || null;
  };

  const resolveAll = (locator, contextNode) => {
    const root = contextNode || document;
    if (isPathExpression(locator)) {
      const snapshot = document.evaluate(
        locator, root, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null
      );
      const nodes = [];
      for (let i = 0; i < snapshot.snapshotLength; i++) nodes.push(snapshot.snapshotItem(i));
      return nodes;
    }
    return Array.from(root.querySelectorAll(locator));
  };

  const parsePath = (path) => path.split(SEGMENT_SEPARATOR).map((segment) => {
    const open = segment.lastIndexOf(INDEX_OPEN);
    if (open <= 0 || !segment.endsWith(INDEX_CLOSE)) {
      throw new SyntaxError(`Malformed element path segment: ${segment}`);
    }
    return { locator: segment.slice(0, open), index: Number(segment.slice(open + 1, -1)) };
  });

  // FIFO by insertion order; cached nodes are never re-validated.
  const registryGet = (path) => {
    const registry = session.registry;
    if (registry.has(path)) return registry.get(path);
    let node = document;
    for (const { locator, index } of parsePath(path)) {
      node = resolve(locator, node, index);
      if (!node) return null;
    }
    if (registry.size >= REGISTRY_LIMIT) registry.delete(registry.keys().next().value);
    registry.set(path, node);
    return node;
  };

  const triggerEvent = (element, type) => {
    element.dispatchEvent(new Event(type, { bubbles: true, cancelable: true }));
  };

  const setValue = (element, value) => {
    if (/^(INPUT|TEXTAREA|SELECT)$/i.test(element.tagName || "")) element.value = value;
    else element.innerHTML = value;
    for (const type of INPUT_EVENT_SEQUENCE) triggerEvent(element, type);
  };

  const findTarget = () => {
    if (message.caught !== null && message.caught !== undefined) {
      return (session.catcher && session.catcher.elements[message.caught]) || null;
    }
    if (message.path) return registryGet(message.path);
    return resolve(message.locator, document, message.index);
  };

  const requireTarget = () => {
    const element = findTarget();
    if (!element) throw new ElementMissing();
    if (message.scroll && typeof element.scrollIntoView === "function") {
      element.scrollIntoView(message.scroll);
    }
    return element;
  };

  const dataUrlToFile = (dataUrl, name) => {
    const comma = dataUrl.indexOf(",");
    const header = dataUrl.slice(0, comma);
    const mime = (header.match(/^data:([^;,]*)/) || [])[1] || "application/octet-stream";
    const binary = atob(dataUrl.slice(comma + 1));
    const bytes = new Uint8Array(binary.length);
    for (let i = 0; i < binary.length; i++) bytes[i] = binary.charCodeAt(i);
    return new File([bytes], name, { type: mime });
  };

  const urlToFile = async (url, name) => {
    const response = await fetch(url);
    if (!response.ok) throw new Error(`Failed to fetch staged file ${name}: ${response.status}`);
    const blob = await response.blob();
    return new File([blob], name, { type: blob.type });
  };

  const transferEntries = (sessionIndex) => {
    const entries = session.files && session.files[sessionIndex];
    if (!entries) throw new Error(`Unknown file transfer session ${sessionIndex}`);
    return entries;
  };

  const dropTransfer = (sessionIndex) => {
    if (!session.files) return false;
    delete session.files[sessionIndex];
    if (!session.files.some(Boolean)) session.files = null;
    return true;
  };

  const operations = {
    exists: () => Boolean(findTarget()),
    describe: () => {
      const element = findTarget();
      return element ? { tagName: element.tagName || element.nodeName } : null;
    },
    list: () => {
      const context = message.path ? registryGet(message.path) : document;
      if (!context) throw new ElementMissing();
      return resolveAll(message.locator, context).map((node) => node.tagName || node.nodeName);
    },
    click: () => {
      requireTarget().click();
      return true;
    },
    focus: () => {
      requireTarget().focus();
      return true;
    },
    scroll_into_view: ([options]) => {
      requireTarget().scrollIntoView(options === null || options === undefined ? true : options);
      return true;
    },
    get_attribute: ([name]) => requireTarget().getAttribute(name),
    set_attribute: ([name, value]) => {
      requireTarget().setAttribute(name, value);
      return true;
    },
    get_tag_name: () => {
      const element = requireTarget();
      return element.tagName || element.nodeName;
    },
    get_text: () => requireTarget().innerText,
    get_html: () => requireTarget().innerHTML,
    set_html: ([html]) => {
      requireTarget().innerHTML = html;
      return true;
    },
    input: ([value]) => {
      setValue(requireTarget(), value);
      return true;
    },
    trigger_event: ([type]) => {
      triggerEvent(requireTarget(), type);
      return true;
    },
    exec_paste: () => {
      const element = requireTarget();
      element.focus();
      if (element.tagName === "INPUT" || element.tagName === "TEXTAREA") element.select();
      document.execCommand("paste");
      return true;
    },
    exec_copy: ([text]) => {
      const textarea = document.createElement("textarea");
      textarea.value = text;
      document.body.appendChild(textarea);
      textarea.select();
      const copied = document.execCommand("copy");
      textarea.remove();
      return copied;
    },
    location: () => location.href,
    registry_paths: () => Array.from(session.registry.keys()),
    catcher_start: ([tagNames]) => {
      if (session.catcher && session.catcher.active) return false;
      const catcher = {
        original: document.createElement,
        elements: [],
        tagNames: tagNames.map((tagName) => String(tagName).toUpperCase()),
        active: true
      };
      document.createElement = function () {
        const element = catcher.original.apply(this, arguments);
        if (catcher.active && catcher.tagNames.includes(element.tagName)) catcher.elements.push(element);
        return element;
      };
      session.catcher = catcher;
      return true;
    },
    catcher_stop: () => {
      const catcher = session.catcher;
      if (!catcher || !catcher.active) return false;
      document.createElement = catcher.original;
      catcher.active = false;
      return true;
    },
    catcher_clear: () => {
      const catcher = session.catcher;
      if (!catcher) return false;
      if (catcher.active) document.createElement = catcher.original;
      session.catcher = null;
      return true;
    },
    catcher_count: () => (session.catcher ? session.catcher.elements.length : 0),
    click_guard_on: () => {
      if (session.clickGuard) return false;
      const overlay = document.createElement("div");
      overlay.style.cssText = __CLICK_GUARD_STYLE__;
      overlay.addEventListener("contextmenu", (event) => event.preventDefault());
      document.body.appendChild(overlay);
      session.clickGuard = overlay;
      return true;
    },
    click_guard_off: () => {
      if (!session.clickGuard) return false;
      session.clickGuard.remove();
      session.clickGuard = null;
      return true;
    },
    files_open: ([manifest]) => {
      if (!session.files) session.files = [];
      const entries = manifest.map(({ name, url }) => (url ? { name, url } : { name, dataUrl: "" }));
      return session.files.push(entries) - 1;
    },
    files_append: ([sessionIndex, fileIndex, chunk]) => {
      const entry = transferEntries(sessionIndex)[fileIndex];
      if (!entry || entry.url) throw new Error(`File ${fileIndex} of session ${sessionIndex} is not inline`);
      entry.dataUrl += chunk;
      return entry.dataUrl.length;
    },
    files_commit: async ([sessionIndex]) => {
      const entries = transferEntries(sessionIndex);
      const element = requireTarget();
      const files = await Promise.all(entries.map(({ name, url, dataUrl }) => (
        url ? urlToFile(url, name) : dataUrlToFile(dataUrl, name)
      )));
      const transfer = new DataTransfer();
      for (const file of files) transfer.items.add(file);
      element.files = transfer.files;
      triggerEvent(element, "input");
      triggerEvent(element, "change");
      dropTransfer(sessionIndex);
      return files.length;
    },
    files_discard: ([sessionIndex]) => dropTransfer(sessionIndex)
  };

  const handler = operations[message.op];
  if (!handler) throw new Error(`Unsupported page operation: ${message.op}`);
  try {
    return { ok: true, value: await handler(message.args || []) };
  } catch (error) {
    if (error instanceof ElementMissing) return { ok: false, error: "not_found" };
    if (error && error.name === "SyntaxError") {
      return { ok: false, error: "locator_syntax", message: String(error.message || error) };
    }
    throw error;
  }
}"""


def _render_runtime() -> str:
    replacements = {
        "__SEGMENT_SEPARATOR__": json.dumps(SEGMENT_SEPARATOR),
        "__INDEX_OPEN__": json.dumps(INDEX_OPEN),
        "__INDEX_CLOSE__": json.dumps(INDEX_CLOSE),
        "__REGISTRY_LIMIT__": str(REGISTRY_LIMIT),
        "__INPUT_EVENT_SEQUENCE__": json.dumps(list(INPUT_EVENT_SEQUENCE)),
        "__PATH_EXPRESSION__": json.dumps(PATH_EXPRESSION_PATTERN),
        "__SESSION_GLOBAL__": json.dumps(SESSION_GLOBAL),
        "__SESSION_VERSION__": str(SESSION_VERSION),
        "__CLICK_GUARD_STYLE__": json.dumps(CLICK_GUARD_STYLE),
    }
    script = _PAGE_RUNTIME_TEMPLATE
    for token, value in replacements.items():
        script = script.replace(token, value)
    return script


PAGE_RUNTIME_JS = _render_runtime()
