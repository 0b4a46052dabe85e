"""
Starter programs shown to users for each built-in language.
"""

from ..core.exceptions import UnsupportedLanguageError

TEMPLATES: dict[str, str] = {
    "javascript": """// JavaScript - Node.js
console.log("Hello from CodeLab!");
const numbers = [1, 2, 3, 4, 5];
const sum = numbers.reduce((a, b) => a + b, 0);
console.log("Sum:", sum);
""",
    "python": """# Python 3
import sys


def greet(name):
    return f"Hello, {name}!"


print(greet("CodeLab"))
print(f"Python Version: {sys.version.split()[0]}")
""",
    "java": """// Java
// Main class must be named 'Main'
public class Main {
    public static void main(String[] args) {
        System.out.println("Hello from Java!");
        for (int i = 1; i <= 3; i++) {
            System.out.println("Count: " + i);
        }
    }
}
""",
    "cpp": """// C++
#include <iostream>
#include <vector>

int main() {
    std::cout << "Hello from C++!" << std::endl;
    std::vector<int> v = {1, 2, 3};
    for (int n : v) {
        std::cout << n << " ";
    }
    return 0;
}
""",
    "csharp": """// C#
using System;
using System.Linq;

class Program {
    static void Main() {
        Console.WriteLine("Hello from C#!");
        var numbers = new[] { 1, 2, 3, 4, 5 };
        Console.WriteLine($"Average: {numbers.Average()}");
    }
}
""",
    "go": """// Go
package main

import "fmt"

func main() {
    fmt.Println("Hello from Go!")
}
""",
    "rust": """// Rust
fn main() {
    println!("Hello from Rust!");
}
""",
    "php": """<?php
echo "Hello from PHP!\\n";
echo "Version: " . phpversion();
?>
""",
}

# Line each starter program is guaranteed to print.
GREETINGS: dict[str, str] = {
    "javascript": "Hello from CodeLab!",
    "python": "Hello, CodeLab!",
    "java": "Hello from Java!",
    "cpp": "Hello from C++!",
    "csharp": "Hello from C#!",
    "go": "Hello from Go!",
    "rust": "Hello from Rust!",
    "php": "Hello from PHP!",
}


def get_template(language: str) -> str:
    """Return the starter program for a language."""
    key = language.strip().lower()
    if key not in TEMPLATES:
        raise UnsupportedLanguageError(language)
    return TEMPLATES[key]
